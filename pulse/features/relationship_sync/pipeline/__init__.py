"""
Pipeline components for relationship sync.

Ingestion turns provider data into contacts and interactions; scoring turns
interaction history into per-contact health scores.
"""

__all__ = ["ingestion", "scoring"]
