"""Row store protocol and an in-process implementation with a version trigger."""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Hashable, Protocol

from optimistic_cache.errors import StoreError
from optimistic_cache.logging_config import get_logger

logger = get_logger(__name__)


class RowStore(Protocol):
    """Protocol for the authoritative row store.

    Implementations must bump the version column atomically on every
    successful write, including writes that never pass through this package.
    """

    async def read_one(
        self, table: str, id_column: str, id_value: Hashable, *, select: str = "*"
    ) -> dict[str, Any] | None: ...  # None if no such row

    async def conditional_update(
        self,
        table: str,
        id_column: str,
        id_value: Hashable,
        patch: dict[str, Any],
        *,
        version_column: str | None,
        expected_version: int | None,
        select: str = "*",
    ) -> dict[str, Any] | None: ...  # None if no row matched id + version


def project(row: dict[str, Any], select: str) -> dict[str, Any]:
    """Apply a PostgREST-style flat column list ("*" or "a, b, c") to a row."""
    if select.strip() == "*":
        return dict(row)
    columns = [c.strip() for c in select.split(",") if c.strip()]
    return {c: row[c] for c in columns if c in row}


class MemoryRowStore:
    """Dict-backed RowStore that behaves like a table with a bump_version trigger.

    Every call yields to the event loop once, so two concurrent updates
    interleave the way two network round trips would.
    """

    def __init__(self, *, version_column: str = "version") -> None:
        self._tables: dict[str, dict[Hashable, dict[str, Any]]] = {}
        self._version_column = version_column
        self.read_calls = 0
        self.write_calls = 0

    def seed(self, table: str, id_column: str, row: dict[str, Any]) -> None:
        """Insert a row as-is (no version bump)."""
        self._tables.setdefault(table, {})[row[id_column]] = copy.deepcopy(row)

    def get(self, table: str, id_value: Hashable) -> dict[str, Any] | None:
        row = self._tables.get(table, {}).get(id_value)
        return copy.deepcopy(row) if row is not None else None

    def rows(self, table: str) -> list[dict[str, Any]]:
        """All rows of ``table`` in insertion order."""
        return [copy.deepcopy(row) for row in self._tables.get(table, {}).values()]

    def delete(self, table: str, id_value: Hashable) -> bool:
        return self._tables.get(table, {}).pop(id_value, None) is not None

    def external_write(self, table: str, id_value: Hashable, patch: dict[str, Any]) -> dict[str, Any]:
        """Write bypassing any client; the trigger still bumps the version."""
        row = self._tables.get(table, {}).get(id_value)
        if row is None:
            raise StoreError(
                f"Row not found: {table}/{id_value}",
                provider="memory",
                code="RECORD_NOT_FOUND",
                context={"table": table, "id": str(id_value)},
                retry_hint=False,
            )
        self._write(row, patch)
        return copy.deepcopy(row)

    def _write(self, row: dict[str, Any], patch: dict[str, Any]) -> None:
        row.update(copy.deepcopy(patch))
        if self._version_column in row:
            row[self._version_column] = row[self._version_column] + 1

    async def read_one(
        self, table: str, id_column: str, id_value: Hashable, *, select: str = "*"
    ) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        self.read_calls += 1
        row = self._tables.get(table, {}).get(id_value)
        if row is None:
            return None
        return project(copy.deepcopy(row), select)

    async def conditional_update(
        self,
        table: str,
        id_column: str,
        id_value: Hashable,
        patch: dict[str, Any],
        *,
        version_column: str | None,
        expected_version: int | None,
        select: str = "*",
    ) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        self.write_calls += 1
        row = self._tables.get(table, {}).get(id_value)
        if row is None:
            return None
        if version_column is not None and expected_version is not None:
            if row.get(version_column) != expected_version:
                logger.debug(
                    "conditional_update_no_match",
                    table=table,
                    expected_version=expected_version,
                    stored_version=row.get(version_column),
                )
                return None
        self._write(row, patch)
        return project(copy.deepcopy(row), select)
