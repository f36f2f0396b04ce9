"""Services package - export service abstractions."""

from optimistic_cache.services.cache import CacheKey, ClientCache, QueryCache
from optimistic_cache.services.notifier import (
    ConflictNotice,
    ConflictNotifier,
    LoggingConflictNotifier,
)
from optimistic_cache.services.optimistic_update import OptimisticUpdateEngine
from optimistic_cache.services.snapshot import CacheSnapshot, restore_snapshot, take_snapshot
from optimistic_cache.services.store import MemoryRowStore, RowStore
from optimistic_cache.services.supabase import SupabaseRowStore

__all__ = [
    "CacheKey",
    "CacheSnapshot",
    "ClientCache",
    "ConflictNotice",
    "ConflictNotifier",
    "LoggingConflictNotifier",
    "MemoryRowStore",
    "OptimisticUpdateEngine",
    "QueryCache",
    "RowStore",
    "SupabaseRowStore",
    "restore_snapshot",
    "take_snapshot",
]
