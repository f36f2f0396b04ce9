"""Versioned record contract and the update request built at mutation time."""

from __future__ import annotations

from typing import Any, Hashable

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_validator


class VersionedRecord(BaseModel):
    """Any row eligible for optimistic locking.

    Domain fields pass through untouched; only ``version`` is checked. The
    store bumps ``version`` on every successful write, clients never set it.
    """

    model_config = ConfigDict(extra="allow")

    version: StrictInt = Field(ge=0)


class UpdateRequest(BaseModel):
    """Mutation intent: which row, what to change, and the version the caller last saw."""

    model_config = ConfigDict(frozen=True)

    id: Hashable
    patch: dict[str, Any]
    expected_version: StrictInt = Field(ge=0)
    version_column: str | None = "version"

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("id is required")
        if isinstance(v, str) and not v.strip():
            raise ValueError("id must not be empty")
        return v

    @model_validator(mode="after")
    def validate_patch_leaves_version_alone(self) -> "UpdateRequest":
        if self.version_column is not None and self.version_column in self.patch:
            raise ValueError(
                f"patch must not set the version column '{self.version_column}'"
            )
        return self
