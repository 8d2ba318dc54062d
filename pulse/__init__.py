"""
Relationship Pulse backend: Gmail and Calendar ingestion with per-contact
relationship health scoring.
"""
