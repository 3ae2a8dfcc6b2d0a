"""
JournalService - Fields, Entries, Sleep, Settings

Handles the write side of custom fields (templates and per-date values),
activity entries, sleep metrics, user settings and list ordering.
"""

import logging
from typing import Optional

from daybook.config import MAX_IMAGE_BYTES
from daybook.exceptions import ConflictError, NotFoundError, ValidationError
from daybook.models.entry import ActivityEntry
from daybook.models.field import (
    NUMERIC_FIELD_TYPES,
    DailyFieldValue,
    FieldTemplate,
    FieldType,
    normalize_boolean,
    parse_field_type,
)
from daybook.models.user import DailySleep, Theme, UserSettings
from daybook.services.base import MutationService
from daybook.utils.datetime_helpers import is_valid_timezone

logger = logging.getLogger(__name__)

# Public list names accepted by reorder() and the tables behind them
REORDER_TARGETS = {
    "fields": "custom_field_templates",
    "daily-fields": "daily_custom_fields",
    "tasks": "daily_tasks",
    "entries": "activity_entries",
    "counters": "custom_counters",
    "time-since": "time_since_trackers",
    "timers": "duration_trackers",
}


def estimate_base64_size(data: str) -> int:
    """Decoded size of a base64 payload (data URL prefix ignored)"""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    return len(data) * 3 // 4


class JournalService(MutationService):
    """
    Service for journal writes that are not tasks or trackers.

    Responsibilities:
    - Field template lifecycle (create, retype, delete)
    - Per-date field values, including daily-only fields
    - Activity entries
    - Sleep metrics
    - User settings (theme, timezone, auto-save)
    - Reordering of every draggable list
    """

    # ==========================================
    # Field templates
    # ==========================================

    async def create_field_template(self, user_id: str, key: str, field_type: str = "text") -> FieldTemplate:
        """
        Create a field template and an empty value for today.

        Raises:
            ValidationError: If the key is blank or the type unknown
            ConflictError: If the user already has a template with this key
        """
        key = (key or "").strip()
        if not key:
            raise ValidationError("is required", field="key", value=key, user_id=user_id)
        parsed_type = parse_field_type(field_type)

        if await self.store.get_field_template(user_id, key):
            raise ConflictError(
                f"Field template '{key}' already exists",
                record_type="Field template",
                key=key,
                user_id=user_id
            )

        today = await self.clock.today(user_id)
        async with self.store.transaction():
            template = await self.store.create_field_template(user_id, key, parsed_type)
            await self.store.upsert_daily_field_value(user_id, today, key, "", True, parsed_type)

        self._invalidate(user_id)
        logger.info(f"Created field template '{key}' ({parsed_type.value}) for user {user_id}")
        return template

    async def update_field_template_type(self, user_id: str, template_id: int, field_type: str) -> FieldTemplate:
        """Change a template's type; stored values are reinterpreted on read"""
        parsed_type = parse_field_type(field_type)
        template = await self.store.update_field_template_type(user_id, template_id, parsed_type)
        if template is None:
            raise NotFoundError(
                f"Field template {template_id} not found",
                record_type="Field template",
                record_id=template_id,
                user_id=user_id
            )
        self._invalidate(user_id)
        return template

    async def delete_field_template(self, user_id: str, template_id: int) -> None:
        """
        Delete a template and today's value for it.

        Values on other dates and snapshots are left untouched.
        """
        template = await self.store.get_field_template_by_id(user_id, template_id)
        if template is None:
            raise NotFoundError(
                f"Field template {template_id} not found",
                record_type="Field template",
                record_id=template_id,
                user_id=user_id
            )

        today = await self.clock.today(user_id)
        async with self.store.transaction():
            await self.store.delete_field_template(user_id, template.key)
            await self.store.delete_daily_field_value(user_id, today, template.key)

        self._invalidate(user_id)
        logger.info(f"Deleted field template '{template.key}' for user {user_id}")

    # ==========================================
    # Field values
    # ==========================================

    async def set_field_value(
        self,
        user_id: str,
        key: str,
        value: str,
        date: Optional[str] = None
    ) -> DailyFieldValue:
        """
        Write the value of a field on a date (today by default).

        Keys without a template are stored as daily-only text fields. A
        change to a boolean field is recorded in the activity log.

        Raises:
            ValidationError: For a non-numeric value in a number/currency field
        """
        date = await self._resolve_date(user_id, date)
        template = await self.store.get_field_template(user_id, key)
        field_type = FieldType(template.field_type) if template else FieldType.TEXT
        value = "" if value is None else str(value)

        if field_type in NUMERIC_FIELD_TYPES and value.strip():
            try:
                float(value)
            except ValueError:
                raise ValidationError("must be a number", field=key, value=value, user_id=user_id)

        async with self.store.transaction():
            if field_type == FieldType.BOOLEAN:
                value = normalize_boolean(value)
                previous = next(
                    (row.value for row in await self.store.get_daily_field_values(user_id, date) if row.key == key),
                    "false"
                )
                row = await self.store.upsert_daily_field_value(user_id, date, key, value, True, field_type)
                if normalize_boolean(previous) != value:
                    state = "checked" if value == "true" else "unchecked"
                    await self._append_log(user_id, date, f'Changed "{key}" field to {state}')
            else:
                row = await self.store.upsert_daily_field_value(
                    user_id, date, key, value, template is not None, field_type
                )

        self._invalidate(user_id, date)
        return row

    async def add_daily_field(
        self,
        user_id: str,
        key: str,
        value: str = "",
        date: Optional[str] = None
    ) -> DailyFieldValue:
        """Add a field that exists only on one date"""
        key = (key or "").strip()
        if not key:
            raise ValidationError("is required", field="key", value=key, user_id=user_id)
        date = await self._resolve_date(user_id, date)

        row = await self.store.upsert_daily_field_value(user_id, date, key, value or "", False, FieldType.TEXT)
        self._invalidate(user_id, date)
        return row

    async def delete_daily_field(self, user_id: str, value_id: int) -> None:
        if not await self.store.delete_daily_field_value_by_id(user_id, value_id):
            raise NotFoundError(
                f"Daily field {value_id} not found",
                record_type="Daily field",
                record_id=value_id,
                user_id=user_id
            )
        self._invalidate(user_id)

    # ==========================================
    # Activity entries
    # ==========================================

    async def create_entry(
        self,
        user_id: str,
        text: str,
        image: Optional[str] = None,
        date: Optional[str] = None
    ) -> ActivityEntry:
        """
        Add an activity entry.

        Raises:
            ValidationError: If the text is empty or the image too large
        """
        if not (text or "").strip() and not image:
            raise ValidationError("is required", field="text", value=text, user_id=user_id)
        if image and estimate_base64_size(image) > MAX_IMAGE_BYTES:
            raise ValidationError(
                f"image exceeds {MAX_IMAGE_BYTES // (1024 * 1024)} MB",
                field="image",
                value=None,
                user_id=user_id
            )
        date = await self._resolve_date(user_id, date)

        entry = await self.store.create_entry(user_id, date, text or "", image=image, timestamp=self.clock.now())
        self._invalidate(user_id, date)
        return entry

    async def update_entry(self, user_id: str, entry_id: int, text: str) -> ActivityEntry:
        entry = await self.store.update_entry(user_id, entry_id, text)
        if entry is None:
            raise NotFoundError(
                f"Entry {entry_id} not found",
                record_type="Entry",
                record_id=entry_id,
                user_id=user_id
            )
        self._invalidate(user_id, entry.date)
        return entry

    async def delete_entry(self, user_id: str, entry_id: int) -> None:
        entry = await self.store.get_entry(user_id, entry_id)
        if entry is None or not await self.store.delete_entry(user_id, entry_id):
            raise NotFoundError(
                f"Entry {entry_id} not found",
                record_type="Entry",
                record_id=entry_id,
                user_id=user_id
            )
        self._invalidate(user_id, entry.date)

    # ==========================================
    # Sleep
    # ==========================================

    async def set_sleep(
        self,
        user_id: str,
        previous_bedtime: str = "",
        wake_time: str = "",
        date: Optional[str] = None
    ) -> DailySleep:
        date = await self._resolve_date(user_id, date)
        sleep = await self.store.set_daily_sleep(user_id, date, previous_bedtime or "", wake_time or "")
        self._invalidate(user_id, date)
        return sleep

    # ==========================================
    # Settings
    # ==========================================

    async def get_settings(self, user_id: str) -> UserSettings:
        return await self.store.get_user_settings(user_id)

    async def update_settings(
        self,
        user_id: str,
        theme: Optional[str] = None,
        timezone: Optional[str] = None,
        auto_save: Optional[bool] = None
    ) -> UserSettings:
        """
        Update user settings.

        A timezone change moves the user's "today", so every cached day is
        dropped.

        Raises:
            ValidationError: For an unknown theme or timezone
        """
        changes = {}
        if theme is not None:
            try:
                changes["theme"] = Theme(theme)
            except ValueError:
                raise ValidationError(
                    f"must be one of: {', '.join(t.value for t in Theme)}",
                    field="theme",
                    value=theme,
                    user_id=user_id
                )
        if timezone is not None:
            if not is_valid_timezone(timezone):
                raise ValidationError("unknown IANA timezone", field="timezone", value=timezone, user_id=user_id)
            changes["timezone"] = timezone
        if auto_save is not None:
            changes["auto_save"] = auto_save

        settings = await self.store.update_user_settings(user_id, **changes)
        self._invalidate(user_id)
        logger.info(f"Updated settings for user {user_id}: {sorted(changes)}")
        return settings

    # ==========================================
    # Ordering
    # ==========================================

    async def reorder(self, user_id: str, target: str, items: list[tuple[int, int]]) -> int:
        """
        Rewrite display order of one list.

        Args:
            user_id: Owner of the rows
            target: One of REORDER_TARGETS
            items: (row_id, order_index) pairs

        Returns:
            Number of rows updated
        """
        table = REORDER_TARGETS.get(target)
        if table is None:
            raise ValidationError(
                f"must be one of: {', '.join(REORDER_TARGETS)}",
                field="target",
                value=target,
                user_id=user_id
            )

        updated = await self.store.reorder(user_id, table, items)
        self._invalidate(user_id)
        return updated
