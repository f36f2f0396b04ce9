"""Capture and restore cache entries around an optimistic mutation."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from optimistic_cache.services.cache import CacheKey, ClientCache


@dataclass(frozen=True)
class CacheSnapshot:
    """Deep copies of cache values keyed by cache key, read-only once taken."""

    entries: Mapping[CacheKey, Any]

    @property
    def keys(self) -> list[CacheKey]:
        return list(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def take_snapshot(cache: ClientCache, keys: Iterable[CacheKey]) -> CacheSnapshot:
    """Copy the current value of every key. Synchronous by contract."""
    entries = {key: copy.deepcopy(cache.get(key)) for key in keys}
    return CacheSnapshot(entries=MappingProxyType(entries))


def restore_snapshot(cache: ClientCache, snapshot: CacheSnapshot) -> None:
    """Write every captured value back verbatim.

    Values are copied again so the snapshot survives later cache mutation.
    """
    for key, value in snapshot.entries.items():
        cache.set(key, _Const(copy.deepcopy(value)))


class _Const:
    """Updater returning a fixed value, so callable or None values are stored as-is."""

    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def __call__(self, _old: Any) -> Any:
        return self.value
