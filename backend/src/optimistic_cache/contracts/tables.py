"""Schema registry describing which tables participate in optimistic locking."""

from __future__ import annotations

import threading

from pydantic import BaseModel, ConfigDict, field_validator

from optimistic_cache.errors import ConfigurationError


class TableSchema(BaseModel):
    """Primary key and version column of one table.

    ``version_column=None`` marks an unversioned table: updates go through
    unconditionally and can never conflict.
    """

    model_config = ConfigDict(frozen=True)

    table: str
    primary_key: str
    version_column: str | None = "version"
    select: str = "*"

    @field_validator("table", "primary_key")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class TableRegistry:
    """Thread-safe name -> TableSchema lookup."""

    def __init__(self, schemas: list[TableSchema] | None = None) -> None:
        self._schemas: dict[str, TableSchema] = {}
        self._lock = threading.Lock()
        for schema in schemas or []:
            self.register(schema)

    def register(self, schema: TableSchema) -> None:
        """Add or replace the schema for ``schema.table``."""
        with self._lock:
            self._schemas[schema.table] = schema

    def get(self, table: str) -> TableSchema:
        """Return the schema for ``table``. Raises ConfigurationError if unknown."""
        with self._lock:
            schema = self._schemas.get(table)
        if schema is None:
            raise ConfigurationError(
                f"Table not registered: {table}",
                code="TABLE_NOT_REGISTERED",
                context={"table": table},
            )
        return schema

    def __contains__(self, table: object) -> bool:
        with self._lock:
            return table in self._schemas

    def tables(self) -> list[str]:
        with self._lock:
            return sorted(self._schemas)


def default_registry() -> TableRegistry:
    """Registry with the retail tables that carry a version column."""
    return TableRegistry([
        TableSchema(table="inventory_items", primary_key="id_item"),
        TableSchema(table="customers", primary_key="id_customer"),
        TableSchema(table="suppliers", primary_key="id_supplier"),
        TableSchema(table="shops", primary_key="id_shop"),
    ])
