"""Tests for template field merging"""
from daybook.models.field import DailyFieldValue, FieldTemplate, FieldType
from daybook.services.field_merger import default_value, merge_template_fields


def _template(id, key, field_type=FieldType.TEXT, order_index=0):
    return FieldTemplate(id=id, user_id="u1", key=key, field_type=field_type, order_index=order_index)


def _value(id, key, value, is_template=True, field_type=FieldType.TEXT):
    return DailyFieldValue(
        id=id, user_id="u1", date="2024-01-05", key=key, value=value,
        is_template=is_template, field_type=field_type
    )


class TestMergeTemplateFields:
    """One resolved field per template, whatever rows exist"""

    def test_template_without_value_row(self):
        """A number template with no row for the date resolves to an empty value"""
        resolved = merge_template_fields([_template(7, "Mood", FieldType.NUMBER)], [])

        assert len(resolved) == 1
        assert resolved[0].model_dump() == {"id": 7, "key": "Mood", "value": "", "field_type": "number"}

    def test_boolean_without_value_defaults_to_false(self):
        resolved = merge_template_fields([_template(1, "Meditated", FieldType.BOOLEAN)], [])

        assert resolved[0].value == "false"

    def test_value_row_supplies_id_and_value(self):
        resolved = merge_template_fields(
            [_template(1, "Weight", FieldType.NUMBER)],
            [_value(40, "Weight", "72.5", field_type=FieldType.NUMBER)]
        )

        assert resolved[0].id == 40
        assert resolved[0].value == "72.5"

    def test_template_type_wins_over_row_type(self):
        """Rows written under an old type are read with the current one"""
        resolved = merge_template_fields(
            [_template(1, "Walked", FieldType.BOOLEAN)],
            [_value(2, "Walked", "1", field_type=FieldType.TEXT)]
        )

        assert resolved[0].field_type == "boolean"
        assert resolved[0].value == "true"

    def test_boolean_values_normalized(self):
        rows = [_value(10, "A", "TRUE"), _value(11, "B", "yes"), _value(12, "C", "0")]
        templates = [
            _template(1, "A", FieldType.BOOLEAN),
            _template(2, "B", FieldType.BOOLEAN),
            _template(3, "C", FieldType.BOOLEAN),
        ]

        values = [f.value for f in merge_template_fields(templates, rows)]

        assert values == ["true", "false", "false"]

    def test_daily_only_rows_are_ignored(self):
        """A daily-only row with a template's key never fills the template"""
        resolved = merge_template_fields(
            [_template(1, "Notes")],
            [_value(5, "Notes", "daily text", is_template=False)]
        )

        assert resolved[0].id == 1
        assert resolved[0].value == ""

    def test_order_follows_template_order(self):
        templates = [
            _template(3, "Third", order_index=2),
            _template(1, "First", order_index=0),
            _template(2, "Second", order_index=1),
        ]

        keys = [f.key for f in merge_template_fields(templates, [])]

        assert keys == ["First", "Second", "Third"]

    def test_rows_without_template_do_not_appear(self):
        resolved = merge_template_fields([], [_value(5, "Orphan", "x")])

        assert resolved == []


def test_default_value():
    assert default_value(FieldType.BOOLEAN) == "false"
    assert default_value(FieldType.NUMBER) == ""
