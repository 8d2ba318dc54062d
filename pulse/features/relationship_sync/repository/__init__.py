"""
Persistence for contacts and interactions.
"""

from .contact_repository import ContactRepository
from .interaction_repository import InteractionRepository
from .postgres_store import PostgresStore
from .store import RelationshipStore, StoreProvider

__all__ = [
    "ContactRepository",
    "InteractionRepository",
    "PostgresStore",
    "RelationshipStore",
    "StoreProvider",
]
