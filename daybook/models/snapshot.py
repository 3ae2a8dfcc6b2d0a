"""
Snapshot document and retention policy models

A snapshot document is self-describing:

    {"schemaVersion": 1, "capturedAt": "...", "source": "manual", "state": {...}}

Documents written before the envelope existed are a bare state dict and are
read as version 0.
"""
import copy
from enum import Enum
from typing import Any, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from daybook.exceptions import ValidationError
from daybook.models.state import DayState

SNAPSHOT_SCHEMA_VERSION = 1


class SnapshotSource(str, Enum):
    MANUAL = "manual"
    # checkpoint taken on the first read of a day
    AUTO = "auto"
    # final capture of a day, taken on the first read after it ended
    ROLLOVER = "rollover"


class SnapshotDocument(BaseModel):
    """Versioned envelope around a frozen DayState"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    schema_version: int = SNAPSHOT_SCHEMA_VERSION
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: SnapshotSource = SnapshotSource.MANUAL
    state: DayState

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _upgrade_v0(raw: dict[str, Any], captured_at: Optional[datetime]) -> dict[str, Any]:
    """Bare legacy state dict -> version 1 envelope"""
    state = copy.deepcopy(raw)
    # Legacy task entries carried no sub-task list
    for task in state.get("dailyTasks") or []:
        task.setdefault("subTasks", [])
    return {
        "schemaVersion": 1,
        "capturedAt": (captured_at or datetime.now(timezone.utc)).isoformat(),
        "source": SnapshotSource.MANUAL.value,
        "state": state,
    }


_UPGRADES = {
    0: _upgrade_v0,
}


def load_snapshot_document(raw: dict[str, Any], captured_at: Optional[datetime] = None) -> SnapshotDocument:
    """
    Parse a stored snapshot document, upgrading older versions in memory.

    Args:
        raw: Decoded JSON as stored
        captured_at: Row creation time, used for legacy documents without one

    Raises:
        ValidationError: If the document is newer than this code understands
    """
    version = raw.get("schemaVersion", 0) if "state" in raw else 0
    if not isinstance(version, int) or version > SNAPSHOT_SCHEMA_VERSION:
        raise ValidationError(
            f"unsupported snapshot schema version {version!r}",
            field="schemaVersion",
            value=version
        )

    document = raw
    while version < SNAPSHOT_SCHEMA_VERSION:
        document = _UPGRADES[version](document, captured_at)
        version = document["schemaVersion"]

    return SnapshotDocument.model_validate(document)


class SnapshotRecord(BaseModel):
    """Stored snapshot row"""
    user_id: str
    date: str
    document: dict[str, Any]
    created_at: Optional[datetime] = None


class SnapshotInfo(BaseModel):
    """Listing entry: which dates have a snapshot and when it was taken"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    date: str
    created_at: Optional[datetime] = None


class RetentionPolicy(BaseModel):
    """Bounds on how many snapshots a user keeps"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_days: int = 30
    max_count: int = 100
