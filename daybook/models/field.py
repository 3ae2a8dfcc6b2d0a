"""Custom field models: persistent templates and per-date values"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from daybook.exceptions import ValidationError


class FieldType(str, Enum):
    """Value type of a custom field"""
    TEXT = "text"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    BOOLEAN = "boolean"


NUMERIC_FIELD_TYPES = frozenset({FieldType.NUMBER, FieldType.CURRENCY})
CATEGORICAL_FIELD_TYPES = frozenset({FieldType.TEXT, FieldType.DATE, FieldType.TIME, FieldType.DATETIME})


def parse_field_type(value: Optional[str]) -> FieldType:
    """Parse a field type string, raising ValidationError for unknown types"""
    try:
        return FieldType(value or FieldType.TEXT.value)
    except ValueError:
        allowed = ", ".join(t.value for t in FieldType)
        raise ValidationError(f"must be one of: {allowed}", field="field_type", value=value)


def normalize_boolean(value: Optional[str]) -> str:
    """Canonical string form of a boolean field value"""
    if isinstance(value, bool):
        return "true" if value else "false"
    return "true" if str(value).strip().lower() in ("true", "1") else "false"


class FieldTemplate(BaseModel):
    """User-defined field whose definition persists across days"""
    id: int
    user_id: str
    key: str
    field_type: FieldType = FieldType.TEXT
    order_index: int = 0


class DailyFieldValue(BaseModel):
    """Value of a field on one date (template-backed or daily-only)"""
    id: int
    user_id: str
    date: str
    key: str
    value: str = ""
    is_template: bool = True
    field_type: FieldType = FieldType.TEXT
    order_index: int = 0
    created_at: Optional[datetime] = None


class ResolvedField(BaseModel):
    """Template merged with the value for one date, as served to clients"""
    model_config = ConfigDict(use_enum_values=True)

    id: int
    key: str
    value: str
    field_type: FieldType
