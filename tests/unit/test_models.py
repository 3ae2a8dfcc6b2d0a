"""Tests for model helpers and snapshot document versioning"""
import pytest
from datetime import datetime, timezone

from daybook.exceptions import ValidationError
from daybook.models.field import FieldType, normalize_boolean, parse_field_type
from daybook.models.snapshot import (
    SNAPSHOT_SCHEMA_VERSION,
    SnapshotDocument,
    SnapshotSource,
    load_snapshot_document,
)
from daybook.models.state import DayState


# ============================================================================
# Field helpers
# ============================================================================

class TestFieldHelpers:

    @pytest.mark.parametrize("raw,expected", [
        ("true", "true"), ("TRUE", "true"), (" 1 ", "true"), (True, "true"),
        ("false", "false"), ("0", "false"), ("", "false"), ("yes", "false"), (None, "false"), (False, "false"),
    ])
    def test_normalize_boolean(self, raw, expected):
        assert normalize_boolean(raw) == expected

    def test_parse_field_type_defaults_to_text(self):
        assert parse_field_type(None) == FieldType.TEXT
        assert parse_field_type("currency") == FieldType.CURRENCY

    def test_parse_field_type_rejects_unknown(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_field_type("color")
        assert exc_info.value.field == "field_type"


# ============================================================================
# Snapshot documents
# ============================================================================

class TestSnapshotDocument:
    """Versioned envelope and legacy upgrade"""

    def test_current_document_round_trips(self):
        document = SnapshotDocument(state=DayState(date="2024-01-05"), source=SnapshotSource.AUTO)

        loaded = load_snapshot_document(document.to_json_dict())

        assert loaded.schema_version == SNAPSHOT_SCHEMA_VERSION
        assert loaded.source == SnapshotSource.AUTO
        assert loaded.state.date == "2024-01-05"

    def test_wire_envelope_keys(self):
        data = SnapshotDocument(state=DayState(date="2024-01-05")).to_json_dict()

        assert set(data) == {"schemaVersion", "capturedAt", "source", "state"}
        assert data["source"] == "manual"

    def test_legacy_bare_state_is_upgraded(self):
        """Pre-envelope documents are a bare state dict"""
        captured = datetime(2023, 6, 1, 8, 0, tzinfo=timezone.utc)
        legacy = {
            "date": "2023-06-01",
            "previousBedtime": "22:30",
            "dailyTasks": [{"id": 1, "text": "old task", "completed": True}],
            "entries": [],
        }

        document = load_snapshot_document(legacy, captured_at=captured)

        assert document.schema_version == 1
        assert document.captured_at == captured
        assert document.state.previous_bedtime == "22:30"
        assert document.state.daily_tasks[0].sub_tasks == []

    def test_legacy_upgrade_leaves_input_untouched(self):
        legacy = {"date": "2023-06-01", "dailyTasks": [{"id": 1, "text": "t"}]}

        load_snapshot_document(legacy)

        assert "subTasks" not in legacy["dailyTasks"][0]

    def test_future_version_rejected(self):
        raw = {"schemaVersion": SNAPSHOT_SCHEMA_VERSION + 1, "state": {"date": "2024-01-05"}}

        with pytest.raises(ValidationError) as exc_info:
            load_snapshot_document(raw)

        assert exc_info.value.field == "schemaVersion"
