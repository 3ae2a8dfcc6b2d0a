"""
Template field merging

Joins the user's persistent field templates with the value rows stored for
one date. Every template yields exactly one resolved field, whether or not a
value was ever written for that date.
"""

from typing import Iterable

from daybook.models.field import (
    DailyFieldValue,
    FieldTemplate,
    FieldType,
    ResolvedField,
    normalize_boolean,
)


def default_value(field_type: FieldType) -> str:
    """Value shown for a template with no row on the date"""
    return "false" if field_type == FieldType.BOOLEAN else ""


def merge_template_fields(
    templates: Iterable[FieldTemplate],
    rows: Iterable[DailyFieldValue]
) -> list[ResolvedField]:
    """
    Resolve every template against the date's value rows.

    The template's current type wins over the type stored on the row.
    Boolean values are normalized to "true"/"false". The resolved id is the
    value row's id when one exists, otherwise the template's id.

    Args:
        templates: The user's field templates
        rows: Value rows for a single date (template and daily-only)

    Returns:
        One ResolvedField per template, ordered by order_index then id
    """
    values_by_key = {row.key: row for row in rows if row.is_template}

    resolved = []
    for template in sorted(templates, key=lambda t: (t.order_index, t.id)):
        row = values_by_key.get(template.key)
        field_type = FieldType(template.field_type)

        if row is None:
            value = default_value(field_type)
        elif field_type == FieldType.BOOLEAN:
            value = normalize_boolean(row.value)
        else:
            value = row.value or ""

        resolved.append(ResolvedField(
            id=row.id if row is not None else template.id,
            key=template.key,
            value=value,
            field_type=field_type,
        ))

    return resolved
