"""Tests for record, conflict and table schema contracts."""

from datetime import timezone

import pytest
from pydantic import ValidationError

from optimistic_cache.contracts import (
    ConflictInfo,
    TableRegistry,
    TableSchema,
    UpdateRequest,
    VersionedRecord,
    default_registry,
)
from optimistic_cache.errors import ConfigurationError


class TestVersionedRecord:
    def test_extra_fields_pass_through(self):
        record = VersionedRecord(version=3, name="Ring", weight=4.2)
        assert record.version == 3
        assert record.model_dump() == {"version": 3, "name": "Ring", "weight": 4.2}

    @pytest.mark.parametrize("bad", [-1, "3", True, None])
    def test_version_must_be_non_negative_int(self, bad):
        with pytest.raises(ValidationError):
            VersionedRecord(version=bad)


class TestUpdateRequest:
    def test_valid_request(self):
        request = UpdateRequest(id="c-1", patch={"name": "X"}, expected_version=0)
        assert request.patch == {"name": "X"}
        assert request.version_column == "version"

    def test_integer_ids_allowed(self):
        assert UpdateRequest(id=42, patch={}, expected_version=1).id == 42

    def test_patch_cannot_set_version(self):
        with pytest.raises(ValidationError, match="version column"):
            UpdateRequest(id="c-1", patch={"version": 9}, expected_version=1)

    def test_custom_version_column_guarded(self):
        with pytest.raises(ValidationError):
            UpdateRequest(id="c-1", patch={"row_version": 9}, expected_version=1, version_column="row_version")

    def test_unversioned_patch_may_carry_version_key(self):
        request = UpdateRequest(id="c-1", patch={"version": "v2 label"}, expected_version=0, version_column=None)
        assert request.patch["version"] == "v2 label"

    def test_request_is_frozen(self):
        request = UpdateRequest(id="c-1", patch={}, expected_version=1)
        with pytest.raises(ValidationError):
            request.expected_version = 2


class TestConflictInfo:
    def test_timestamp_defaults_to_utc_now(self):
        info = ConflictInfo(expected_version=2, actual_version=3, server_data={"version": 3})
        assert info.timestamp.tzinfo == timezone.utc
        assert info.attempted_update == {}

    def test_server_data_may_be_missing(self):
        info = ConflictInfo(expected_version=2, actual_version=-1, server_data=None)
        assert info.server_data is None


class TestTableRegistry:
    def test_default_registry_tables(self):
        registry = default_registry()
        assert registry.tables() == ["customers", "inventory_items", "shops", "suppliers"]
        assert registry.get("inventory_items").primary_key == "id_item"
        assert registry.get("shops").version_column == "version"

    def test_unknown_table_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            TableRegistry().get("expenses")
        assert exc_info.value.code == "TABLE_NOT_REGISTERED"

    def test_register_replaces(self):
        registry = TableRegistry([TableSchema(table="notes", primary_key="id")])
        registry.register(TableSchema(table="notes", primary_key="id", version_column=None))

        assert "notes" in registry
        assert registry.get("notes").version_column is None

    def test_blank_primary_key_rejected(self):
        with pytest.raises(ValidationError):
            TableSchema(table="notes", primary_key="  ")
