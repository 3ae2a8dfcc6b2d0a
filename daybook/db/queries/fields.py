"""Custom field template and daily value queries"""
import logging
from typing import Optional
from daybook.db.connection import db
from daybook.models.field import FieldTemplate, DailyFieldValue, FieldType

logger = logging.getLogger(__name__)

_TEMPLATE_COLUMNS = "id, user_id, key, field_type, order_index"
_VALUE_COLUMNS = "id, user_id, date, key, value, is_template, field_type, order_index, created_at"


# Templates
async def get_field_templates(user_id: str) -> list[FieldTemplate]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_TEMPLATE_COLUMNS} FROM custom_field_templates WHERE user_id = %s ORDER BY order_index, id",
                (user_id,)
            )
            rows = await cur.fetchall()
    return [FieldTemplate(**row) for row in rows]


async def get_field_template(user_id: str, key: str) -> Optional[FieldTemplate]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_TEMPLATE_COLUMNS} FROM custom_field_templates WHERE user_id = %s AND key = %s",
                (user_id, key)
            )
            row = await cur.fetchone()
    return FieldTemplate(**row) if row else None


async def get_field_template_by_id(user_id: str, template_id: int) -> Optional[FieldTemplate]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_TEMPLATE_COLUMNS} FROM custom_field_templates WHERE user_id = %s AND id = %s",
                (user_id, template_id)
            )
            row = await cur.fetchone()
    return FieldTemplate(**row) if row else None


async def create_field_template(user_id: str, key: str, field_type: FieldType) -> FieldTemplate:
    """Create a template appended after the user's existing ones"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO custom_field_templates (user_id, key, field_type, order_index)
                VALUES (
                    %s, %s, %s,
                    (SELECT COALESCE(MAX(order_index), -1) + 1 FROM custom_field_templates WHERE user_id = %s)
                )
                RETURNING {_TEMPLATE_COLUMNS}
                """,
                (user_id, key, field_type.value, user_id)
            )
            row = await cur.fetchone()
    logger.info(f"Created field template '{key}' ({field_type.value}) for user {user_id}")
    return FieldTemplate(**row)


async def update_field_template_type(user_id: str, template_id: int, field_type: FieldType) -> Optional[FieldTemplate]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE custom_field_templates SET field_type = %s
                WHERE user_id = %s AND id = %s
                RETURNING {_TEMPLATE_COLUMNS}
                """,
                (field_type.value, user_id, template_id)
            )
            row = await cur.fetchone()
    return FieldTemplate(**row) if row else None


async def delete_field_template(user_id: str, key: str) -> bool:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM custom_field_templates WHERE user_id = %s AND key = %s",
                (user_id, key)
            )
            return cur.rowcount > 0


# Daily values
async def get_daily_field_values(user_id: str, date: str) -> list[DailyFieldValue]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_VALUE_COLUMNS} FROM daily_custom_fields
                WHERE user_id = %s AND date = %s
                ORDER BY order_index, id
                """,
                (user_id, date)
            )
            rows = await cur.fetchall()
    return [DailyFieldValue(**row) for row in rows]


async def get_field_values_in_range(user_id: str, key: str, start_date: str, end_date: str) -> list[DailyFieldValue]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_VALUE_COLUMNS} FROM daily_custom_fields
                WHERE user_id = %s AND key = %s AND date >= %s AND date <= %s
                ORDER BY date, id
                """,
                (user_id, key, start_date, end_date)
            )
            rows = await cur.fetchall()
    return [DailyFieldValue(**row) for row in rows]


async def upsert_daily_field_value(
    user_id: str,
    date: str,
    key: str,
    value: str,
    is_template: bool,
    field_type: FieldType
) -> DailyFieldValue:
    """Insert or overwrite the value of a field on a date"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO daily_custom_fields (user_id, date, key, value, is_template, field_type, order_index)
                VALUES (
                    %s, %s, %s, %s, %s, %s,
                    (SELECT COALESCE(MAX(order_index), -1) + 1 FROM daily_custom_fields WHERE user_id = %s AND date = %s)
                )
                ON CONFLICT (user_id, date, key)
                DO UPDATE SET value = EXCLUDED.value, is_template = EXCLUDED.is_template,
                              field_type = EXCLUDED.field_type
                RETURNING {_VALUE_COLUMNS}
                """,
                (user_id, date, key, value, is_template, field_type.value, user_id, date)
            )
            row = await cur.fetchone()
    return DailyFieldValue(**row)


async def delete_daily_field_value(user_id: str, date: str, key: str) -> bool:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM daily_custom_fields WHERE user_id = %s AND date = %s AND key = %s",
                (user_id, date, key)
            )
            return cur.rowcount > 0


async def delete_daily_field_value_by_id(user_id: str, value_id: int) -> bool:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM daily_custom_fields WHERE user_id = %s AND id = %s AND is_template = FALSE",
                (user_id, value_id)
            )
            return cur.rowcount > 0


async def get_populated_fields(user_id: str, start_date: str, end_date: str) -> list[dict]:
    """Distinct field keys with a non-empty value in the range, with their current type"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT DISTINCT dcf.key, COALESCE(cft.field_type, 'text') AS field_type
                FROM daily_custom_fields dcf
                LEFT JOIN custom_field_templates cft ON dcf.user_id = cft.user_id AND dcf.key = cft.key
                WHERE dcf.user_id = %s AND dcf.date >= %s AND dcf.date <= %s AND dcf.value <> ''
                ORDER BY dcf.key
                """,
                (user_id, start_date, end_date)
            )
            rows = await cur.fetchall()
    return [{"key": row["key"], "fieldType": row["field_type"]} for row in rows]
