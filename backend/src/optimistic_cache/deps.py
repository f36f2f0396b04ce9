"""Dependency injection helpers: pre-wired engines for the versioned retail tables."""

from __future__ import annotations

from typing import Any

from optimistic_cache.config import get_settings
from optimistic_cache.contracts.tables import TableRegistry, TableSchema, default_registry
from optimistic_cache.services.cache import CacheKey, ClientCache
from optimistic_cache.services.optimistic_update import OptimisticUpdateEngine
from optimistic_cache.services.store import RowStore
from optimistic_cache.services.supabase import SupabaseRowStore

_registry: TableRegistry | None = None


def get_registry() -> TableRegistry:
    """Process-wide table registry, created on first use."""
    global _registry
    if _registry is None:
        _registry = default_registry()
    return _registry


def create_row_store(config: dict[str, Any] | None = None) -> SupabaseRowStore:
    """Create the Supabase row store from settings (or an explicit config dict)."""
    return SupabaseRowStore(config=config)


def create_update_engine(
    store: RowStore,
    cache: ClientCache,
    table: str,
    cache_keys: list[CacheKey],
    *,
    registry: TableRegistry | None = None,
    **options: Any,
) -> OptimisticUpdateEngine:
    """Create an engine for a registered table.

    The registry entry's version column falls back to the configured default
    when the schema keeps the stock ``"version"`` name.
    """
    schema = (registry or get_registry()).get(table)
    settings = get_settings()
    if schema.version_column == "version" and settings.version_column != "version":
        schema = schema.model_copy(update={"version_column": settings.version_column})
    if schema.select == "*" and settings.default_select != "*":
        schema = schema.model_copy(update={"select": settings.default_select})
    return OptimisticUpdateEngine(store, cache, schema, cache_keys, **options)


def create_inventory_update(
    store: RowStore, cache: ClientCache, shop_id: str, item_id: str | None = None, **options: Any
) -> OptimisticUpdateEngine:
    """Engine for inventory items: shop list, plus the item detail when given."""
    keys: list[CacheKey] = [("inventory", shop_id)]
    if item_id:
        keys.append(("inventory-item", item_id))
    return create_update_engine(store, cache, "inventory_items", keys, **options)


def create_customer_update(
    store: RowStore, cache: ClientCache, shop_id: str, customer_id: str | None = None, **options: Any
) -> OptimisticUpdateEngine:
    keys: list[CacheKey] = [("customers", shop_id)]
    if customer_id:
        keys.append(("customer", customer_id))
    return create_update_engine(store, cache, "customers", keys, **options)


def create_supplier_update(
    store: RowStore, cache: ClientCache, shop_id: str, supplier_id: str | None = None, **options: Any
) -> OptimisticUpdateEngine:
    keys: list[CacheKey] = [("suppliers", shop_id)]
    if supplier_id:
        keys.append(("supplier", supplier_id))
    return create_update_engine(store, cache, "suppliers", keys, **options)


def create_shop_update(
    store: RowStore, cache: ClientCache, shop_id: str, **options: Any
) -> OptimisticUpdateEngine:
    """Engine for the shop row: its detail key and the shops list."""
    return create_update_engine(store, cache, "shops", [("shop", shop_id), ("shops",)], **options)


def register_table(schema: TableSchema) -> None:
    """Make another versioned table available to create_update_engine."""
    get_registry().register(schema)
