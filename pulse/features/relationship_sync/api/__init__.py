"""
HTTP routes for relationship sync.
"""
