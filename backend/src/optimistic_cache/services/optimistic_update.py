"""Optimistic updates with version-based conflict detection.

Lifecycle of one ``update`` call:

1. pause in-flight refetches of every registered cache key
2. snapshot those keys and apply the patch to them (one synchronous block)
3. read the stored version; a mismatch is a conflict and nothing is written
4. conditional write (``WHERE id = ? AND version = ?``); zero rows means the
   version moved after step 3, so the row is re-read and reported as a conflict
5. commit: invalidate the keys so they refetch the authoritative row
   rollback: restore the snapshot, then record/notify the conflict or report the error

Steps 3 and 4 are two round trips; the conditional write is the only arbiter,
the read-check just fails fast.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Hashable

from pydantic import ValidationError

from optimistic_cache.config import get_settings
from optimistic_cache.contracts.conflict import ConflictInfo
from optimistic_cache.contracts.records import UpdateRequest
from optimistic_cache.contracts.tables import TableSchema
from optimistic_cache.errors import (
    ConfigurationError,
    PreconditionError,
    StoreError,
    VersionConflictError,
)
from optimistic_cache.logging_config import get_logger, mutation_context
from optimistic_cache.services.cache import CacheKey, ClientCache
from optimistic_cache.services.notifier import ConflictNotifier, LoggingConflictNotifier
from optimistic_cache.services.snapshot import CacheSnapshot, restore_snapshot, take_snapshot
from optimistic_cache.services.store import RowStore

logger = get_logger(__name__)

Row = dict[str, Any]
OptimisticTransform = Callable[[Row, Row], Row]
ConflictCallback = Callable[[ConflictInfo], None]
SuccessCallback = Callable[[Row], None]
ErrorCallback = Callable[[Exception], None]


class OptimisticUpdateEngine:
    """Applies updates to cached rows immediately and reconciles with the store."""

    def __init__(
        self,
        store: RowStore,
        cache: ClientCache,
        schema: TableSchema,
        cache_keys: Iterable[CacheKey],
        *,
        optimistic_transform: OptimisticTransform | None = None,
        on_conflict: ConflictCallback | None = None,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
        notifier: ConflictNotifier | None = None,
        show_conflict_notification: bool | None = None,
        conflict_message: str | None = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._cache = cache
        self._schema = schema
        self._cache_keys: list[CacheKey] = [_as_cache_key(key) for key in cache_keys]
        self._transform = optimistic_transform
        self._on_conflict = on_conflict
        self._on_success = on_success
        self._on_error = on_error
        self._notifier: ConflictNotifier = notifier or LoggingConflictNotifier()
        self._show_notification = (
            settings.show_conflict_notification
            if show_conflict_notification is None
            else show_conflict_notification
        )
        self._conflict_message = conflict_message or settings.conflict_message
        self._conflict: ConflictInfo | None = None
        self._in_flight = 0

    @property
    def schema(self) -> TableSchema:
        return self._schema

    @property
    def cache_keys(self) -> list[CacheKey]:
        return list(self._cache_keys)

    @property
    def is_updating(self) -> bool:
        """True while any update call is pending. Disable the triggering control meanwhile."""
        return self._in_flight > 0

    @property
    def conflict(self) -> ConflictInfo | None:
        return self._conflict

    @property
    def has_conflict(self) -> bool:
        return self._conflict is not None

    def clear_conflict(self) -> None:
        if self._conflict is not None:
            logger.info("conflict_cleared", table=self._schema.table)
        self._conflict = None

    async def refresh(self) -> None:
        """Refetch every registered key and drop the stored conflict."""
        for key in self._cache_keys:
            await self._cache.invalidate(key)
        self.clear_conflict()

    async def update(self, id: Hashable, patch: Mapping[str, Any], expected_version: int) -> Row:
        """Update one row guarded by ``expected_version``. Returns the stored row.

        Raises PreconditionError for malformed input (cache untouched),
        VersionConflictError on a version mismatch, and re-raises any other
        store failure. The cache is rolled back before anything is raised.
        """
        request = self._build_request(id, patch, expected_version)
        with mutation_context(self._schema.table, request.id):
            self._in_flight += 1
            try:
                return await self._run(request)
            finally:
                self._in_flight -= 1

    def _build_request(self, id: Hashable, patch: Any, expected_version: Any) -> UpdateRequest:
        try:
            return UpdateRequest(
                id=id,
                patch=patch,
                expected_version=expected_version,
                version_column=self._schema.version_column,
            )
        except ValidationError as e:
            raise PreconditionError(
                f"Invalid update for {self._schema.table}",
                context={
                    "table": self._schema.table,
                    "errors": [err["msg"] for err in e.errors()],
                },
            ) from e

    async def _run(self, request: UpdateRequest) -> Row:
        logger.info("optimistic_update_started", expected_version=request.expected_version)

        for key in self._cache_keys:
            await self._cache.cancel_inflight(key)

        # no await between snapshot and apply
        snapshot = take_snapshot(self._cache, self._cache_keys)
        try:
            for key in self._cache_keys:
                self._cache.set(key, lambda old: self._apply_optimistic(old, request))
            row = await self._write(request)
        except VersionConflictError as e:
            self._rollback(snapshot)
            self._handle_conflict(e, request)
            raise
        except Exception as e:
            self._rollback(snapshot)
            logger.warning(
                "optimistic_update_failed",
                error_type=type(e).__name__,
                error_code=getattr(e, "code", None),
            )
            if self._on_error is not None:
                self._on_error(e)
            raise
        except asyncio.CancelledError:
            self._rollback(snapshot)
            raise

        await self._invalidate_all()
        self.clear_conflict()
        if self._on_success is not None:
            self._on_success(row)
        logger.info("optimistic_update_committed", version=self._version_of(row))
        return row

    async def _write(self, request: UpdateRequest) -> Row:
        schema = self._schema
        current = await self._store.read_one(
            schema.table, schema.primary_key, request.id, select=schema.select
        )
        if current is None:
            raise self._not_found(request)

        current_version = self._version_of(current)
        if current_version is not None and current_version != request.expected_version:
            logger.warning(
                "version_conflict_detected",
                stage="read_check",
                expected_version=request.expected_version,
                actual_version=current_version,
            )
            raise VersionConflictError(request.expected_version, current_version, current)

        # unversioned row: write without the version filter
        guarded = current_version is not None
        updated = await self._store.conditional_update(
            schema.table,
            schema.primary_key,
            request.id,
            dict(request.patch),
            version_column=schema.version_column if guarded else None,
            expected_version=request.expected_version if guarded else None,
            select=schema.select,
        )
        if updated is not None:
            return updated
        if not guarded:
            raise self._not_found(request)

        latest = await self._store.read_one(
            schema.table, schema.primary_key, request.id, select=schema.select
        )
        latest_version = self._version_of(latest) if latest is not None else None
        actual_version = latest_version if latest_version is not None else -1
        logger.warning(
            "version_conflict_detected",
            stage="conditional_write",
            expected_version=request.expected_version,
            actual_version=actual_version,
        )
        raise VersionConflictError(request.expected_version, actual_version, latest)

    def _apply_optimistic(self, old: Any, request: UpdateRequest) -> Any:
        if old is None:
            return old
        if isinstance(old, list):
            return [
                self._merge(item, request.patch) if self._matches(item, request.id) else item
                for item in old
            ]
        if self._matches(old, request.id):
            return self._merge(old, request.patch)
        return old

    def _matches(self, item: Any, id: Hashable) -> bool:
        return isinstance(item, Mapping) and item.get(self._schema.primary_key) == id

    def _merge(self, item: Mapping[str, Any], patch: Mapping[str, Any]) -> Row:
        if self._transform is not None:
            # the transform owns the version bump
            return self._transform(copy.deepcopy(dict(item)), copy.deepcopy(dict(patch)))
        merged = {**item, **copy.deepcopy(dict(patch))}
        version_column = self._schema.version_column
        if version_column is not None:
            merged[version_column] = (item.get(version_column) or 0) + 1
        return merged

    def _version_of(self, row: Mapping[str, Any]) -> int | None:
        version_column = self._schema.version_column
        if version_column is None:
            return None
        value = row.get(version_column)
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    def _rollback(self, snapshot: CacheSnapshot) -> None:
        restore_snapshot(self._cache, snapshot)
        logger.info("cache_rolled_back", keys=len(snapshot))

    def _handle_conflict(self, error: VersionConflictError, request: UpdateRequest) -> None:
        info = ConflictInfo(
            expected_version=error.expected_version,
            actual_version=error.actual_version,
            server_data=error.server_data,
            attempted_update=dict(request.patch),
        )
        self._conflict = info
        # the VersionConflictError is always what the caller sees
        if self._show_notification:
            try:
                self._notifier.notify(info, self.refresh, message=self._conflict_message)
            except Exception as e:
                logger.warning("conflict_notification_failed", error_type=type(e).__name__)
        if self._on_conflict is not None:
            try:
                self._on_conflict(info)
            except Exception as e:
                logger.warning("conflict_callback_failed", error_type=type(e).__name__)

    async def _invalidate_all(self) -> None:
        for key in self._cache_keys:
            try:
                await self._cache.invalidate(key)
            except Exception as e:
                # the write is committed; a failed refetch leaves the key stale
                logger.warning(
                    "cache_invalidation_failed", key=repr(key), error_type=type(e).__name__
                )

    def _not_found(self, request: UpdateRequest) -> StoreError:
        return StoreError(
            f"Record not found: {self._schema.table}/{request.id}",
            provider="row_store",
            code="RECORD_NOT_FOUND",
            context={"table": self._schema.table, "id": str(request.id)},
            retry_hint=False,
        )


def _as_cache_key(key: Any) -> CacheKey:
    if isinstance(key, tuple):
        return key
    if isinstance(key, list):
        return tuple(key)
    if isinstance(key, str):
        return (key,)
    raise ConfigurationError(
        f"Cache key must be a tuple, got {type(key).__name__}",
        code="INVALID_CACHE_KEY",
        context={"key": repr(key)},
    )
