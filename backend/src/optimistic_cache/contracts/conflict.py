"""Conflict model produced when the expected version no longer matches the store."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ConflictInfo(BaseModel):
    """A detected mismatch between the version a caller expected and the stored one.

    ``actual_version`` may be lower than ``expected_version`` (e.g. after a
    revert); any mismatch counts. ``server_data`` is None only when the row
    disappeared between the failed write and the re-read.
    """

    model_config = ConfigDict(frozen=True)

    expected_version: int
    actual_version: int
    server_data: dict[str, Any] | None
    attempted_update: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
