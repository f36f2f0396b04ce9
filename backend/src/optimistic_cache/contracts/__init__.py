"""Contracts package - export key models."""

from optimistic_cache.contracts.conflict import ConflictInfo
from optimistic_cache.contracts.records import UpdateRequest, VersionedRecord
from optimistic_cache.contracts.tables import TableRegistry, TableSchema, default_registry

__all__ = [
    "ConflictInfo",
    "TableRegistry",
    "TableSchema",
    "UpdateRequest",
    "VersionedRecord",
    "default_registry",
]
