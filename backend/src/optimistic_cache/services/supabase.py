"""Supabase (PostgREST) row store adapter."""

import re
from typing import Any, Hashable, Optional

from optimistic_cache.config import get_settings
from optimistic_cache.errors import ConfigurationError, OptimisticCacheError, StoreError
from optimistic_cache.logging_config import get_logger
from optimistic_cache.services.store import project

logger = get_logger(__name__)

_MAX_ERROR_MESSAGE = 150


class SupabaseRowStore:
    """RowStore backed by the async supabase-py client.

    The ``bump_version_trigger`` on each versioned table increments the
    version column on every UPDATE, so this adapter never writes it.
    """

    def __init__(self, config: Optional[dict[str, Any]] = None, client: Any | None = None):
        self.config = config or {}
        self._client: Any | None = client  # Intentional Any: supabase AsyncClient
        settings = get_settings()
        self._supabase_url = self.config.get("supabase_url") or settings.supabase_url
        self._supabase_key = self.config.get("supabase_key") or settings.supabase_key

    async def _load_client(self) -> Any:
        """Create the Supabase client lazily."""
        if self._client is not None:
            return self._client
        if not self._supabase_url or not self._supabase_key:
            raise ConfigurationError(
                "Supabase credentials not configured",
                context={"missing": [
                    name for name, value in (
                        ("supabase_url", self._supabase_url),
                        ("supabase_key", self._supabase_key),
                    ) if not value
                ]},
            )
        from supabase import acreate_client

        self._client = await acreate_client(self._supabase_url, self._supabase_key)
        return self._client

    async def read_one(
        self, table: str, id_column: str, id_value: Hashable, *, select: str = "*"
    ) -> dict[str, Any] | None:
        client = await self._load_client()
        try:
            response = await (
                client.table(table).select(select).eq(id_column, id_value).limit(1).execute()
            )
        except OptimisticCacheError:
            raise
        except Exception as e:
            logger.warning("supabase_read_failed", table=table, error_type=type(e).__name__)
            raise StoreError(
                f"Failed to fetch current data: {self._sanitize_error_message(e)}",
                provider="supabase",
                context={"table": table, "operation": "read_one", "error_type": type(e).__name__},
            ) from e
        rows = response.data or []
        if not rows:
            return None
        return dict(rows[0])

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
        client = await self._load_client()
        query = client.table(table).update(patch).eq(id_column, id_value)
        if version_column is not None and expected_version is not None:
            query = query.eq(version_column, expected_version)
        try:
            response = await query.execute()
        except OptimisticCacheError:
            raise
        except Exception as e:
            logger.warning("supabase_update_failed", table=table, error_type=type(e).__name__)
            raise StoreError(
                f"Update failed: {self._sanitize_error_message(e)}",
                provider="supabase",
                context={"table": table, "operation": "conditional_update", "error_type": type(e).__name__},
            ) from e
        rows = response.data or []
        if not rows:
            # zero rows updated: id + version filter matched nothing
            return None
        return project(dict(rows[0]), select)

    def _sanitize_error_message(self, error: Exception) -> str:
        """Return bounded and redacted error text safe for error context."""
        message = str(error)

        for value in [self._supabase_url, self._supabase_key]:
            if value:
                message = message.replace(value, "[REDACTED]")

        message = re.sub(r"[sS][kK]_[a-zA-Z0-9]{32,}", "[REDACTED_KEY]", message)
        message = re.sub(r"sbp_[a-zA-Z0-9]{48}", "[REDACTED_KEY]", message)
        message = re.sub(r"eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+", "[REDACTED_TOKEN]", message)
        message = re.sub(r"https://[a-z0-9-]{10,}\.supabase\.co", "[REDACTED_URL]", message)
        message = re.sub(r"postgresql[s]?://[^\"\s\']*[\s\']?", "[REDACTED_CONNECTION]", message)

        return message[:_MAX_ERROR_MESSAGE].split("\n")[0]
