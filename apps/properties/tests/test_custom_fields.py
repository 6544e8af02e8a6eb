"""Tests for the category custom-field schema."""

from __future__ import annotations

from django.test import SimpleTestCase

from apps.properties.custom_fields import (
    CustomFieldDefinition,
    FieldType,
    Icon,
    normalize_custom_data,
    parse_schema,
    validate_custom_data,
)

CAR_FIELDS = [
    {"name": "mileage", "label_ar": "المسافة المقطوعة", "type": "number", "required": True},
    {"name": "transmission", "label_ar": "ناقل الحركة", "type": "select", "options": ["automatic", "manual"]},
    {"name": "warranty", "label_ar": "ضمان", "type": "checkbox"},
    {"name": "notes", "label_ar": "ملاحظات", "type": "textarea"},
]


class SchemaParsingTests(SimpleTestCase):
    def test_parse_schema_skips_malformed_entries(self) -> None:
        with self.assertLogs("apps.properties.custom_fields", level="WARNING"):
            schema = parse_schema(CAR_FIELDS + [{"label_ar": "بدون اسم"}, "junk"])

        self.assertEqual([d.name for d in schema], ["mileage", "transmission", "warranty", "notes"])
        self.assertEqual(schema[1].options, ["automatic", "manual"])
        self.assertTrue(schema[0].required)

    def test_unknown_type_falls_back(self) -> None:
        with self.assertLogs("apps.properties.custom_fields", level="WARNING"):
            definition = CustomFieldDefinition.from_dict({"name": "color", "type": "colour-picker"})
        self.assertIs(definition.type, FieldType.UNKNOWN)
        self.assertEqual(definition.label_ar, "color")

    def test_to_dict_round_trip(self) -> None:
        definition = CustomFieldDefinition.from_dict(
            {"name": "rooms", "label_ar": "الغرف", "label_en": "Rooms", "type": "NUMBER", "icon": "Bed"}
        )
        self.assertEqual(
            definition.to_dict(),
            {"name": "rooms", "label_ar": "الغرف", "label_en": "Rooms", "type": "number", "required": False, "icon": "bed"},
        )
        self.assertEqual(CustomFieldDefinition.from_dict(definition.to_dict()), definition)

    def test_icon_names(self) -> None:
        self.assertIs(Icon.parse("Home"), Icon.HOME)
        self.assertIs(Icon.parse("MapPin"), Icon.MAP_PIN)
        self.assertIs(Icon.parse("map-pin"), Icon.MAP_PIN)
        self.assertIs(Icon.parse("Rocket"), Icon.DEFAULT)
        self.assertIs(Icon.parse(None), Icon.DEFAULT)


class CustomDataValidationTests(SimpleTestCase):
    def setUp(self) -> None:
        self.schema = parse_schema(CAR_FIELDS)

    def test_valid_data(self) -> None:
        data = {"mileage": 120000, "transmission": "automatic", "warranty": False, "notes": "سيارة نظيفة"}
        self.assertEqual(validate_custom_data(self.schema, data), {})

    def test_required_field(self) -> None:
        self.assertEqual(validate_custom_data(self.schema, {"mileage": "  "}), {"mileage": "required"})

    def test_type_errors(self) -> None:
        errors = validate_custom_data(
            self.schema, {"mileage": "far", "transmission": "cvt", "warranty": "maybe", "notes": 5}
        )
        self.assertEqual(errors["mileage"], "must be a number")
        self.assertEqual(errors["transmission"], "must be one of: automatic, manual")
        self.assertEqual(errors["warranty"], "must be true or false")
        self.assertEqual(errors["notes"], "must be text")

    def test_normalize_form_values(self) -> None:
        data = normalize_custom_data(
            self.schema, {"mileage": "85000", "warranty": "on", "extra": "kept"}
        )
        self.assertEqual(data, {"mileage": 85000, "warranty": True, "extra": "kept"})
        self.assertEqual(normalize_custom_data(self.schema, {"mileage": "12.5"})["mileage"], 12.5)
        self.assertEqual(validate_custom_data(self.schema, data), {})

    def test_non_finite_numbers_are_rejected(self) -> None:
        data = normalize_custom_data(self.schema, {"mileage": "Infinity"})
        self.assertEqual(validate_custom_data(self.schema, data), {"mileage": "must be a number"})
