"""Category custom-field schema.

Field types and icons are closed enumerations with an explicit fallback
member, so an unexpected string coming from stored JSON degrades to a
known variant instead of a failed lookup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    TEXTAREA = "textarea"
    CHECKBOX = "checkbox"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value) -> "FieldType":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning(f"Unknown custom field type {value!r}")
            return cls.UNKNOWN


class Icon(str, Enum):
    HOME = "home"
    BUILDING = "building"
    CAR = "car"
    SMARTPHONE = "smartphone"
    SOFA = "sofa"
    BED = "bed"
    BATH = "bath"
    MAP_PIN = "map-pin"
    CALENDAR = "calendar"
    PALETTE = "palette"
    PACKAGE = "package"
    DEFAULT = "tag"

    @classmethod
    def parse(cls, value) -> "Icon":
        if not value:
            return cls.DEFAULT
        # Stored names come as "Home", "MapPin" or "map-pin"
        text = str(value).strip()
        normalized = "".join(
            "-" + c.lower() if c.isupper() and i else c.lower() for i, c in enumerate(text)
        ).replace("_", "-").replace("--", "-")
        try:
            return cls(normalized)
        except ValueError:
            return cls.DEFAULT


@dataclass(frozen=True)
class CustomFieldDefinition:
    name: str
    label_ar: str
    label_en: str = ""
    type: FieldType = FieldType.TEXT
    required: bool = False
    options: List[str] = field(default_factory=list)
    icon: Icon = Icon.DEFAULT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomFieldDefinition":
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValueError("Custom field name is required")
        label_ar = str(data.get("label_ar") or data.get("label") or name)
        field_type = FieldType.parse(data.get("type", FieldType.TEXT.value))
        options = [str(o) for o in data.get("options") or []] if field_type is FieldType.SELECT else []
        return cls(
            name=name,
            label_ar=label_ar,
            label_en=str(data.get("label_en") or label_ar),
            type=field_type,
            required=bool(data.get("required", False)),
            options=options,
            icon=Icon.parse(data.get("icon")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "label_ar": self.label_ar,
            "label_en": self.label_en,
            "type": self.type.value,
            "required": self.required,
        }
        if self.type is FieldType.SELECT:
            data["options"] = list(self.options)
        if self.icon is not Icon.DEFAULT:
            data["icon"] = self.icon.value
        return data


def parse_schema(raw: Optional[Iterable[Dict[str, Any]]]) -> List[CustomFieldDefinition]:
    """Definitions from stored JSON; malformed entries are skipped."""
    definitions = []
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        try:
            definitions.append(CustomFieldDefinition.from_dict(item))
        except ValueError as e:
            logger.warning(f"Skipping malformed custom field {item!r}: {e}")
    return definitions


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_number(value) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def normalize_custom_data(
    definitions: Iterable[CustomFieldDefinition], data: Dict[str, Any]
) -> Dict[str, Any]:
    """Coerce form values (strings) to the declared types where possible."""
    normalized = dict(data)
    for definition in definitions:
        value = normalized.get(definition.name)
        if _is_blank(value):
            continue
        if definition.type is FieldType.NUMBER:
            number = _coerce_number(value)
            if number is not None:
                normalized[definition.name] = int(number) if number == number.to_integral_value() else float(number)
        elif definition.type is FieldType.CHECKBOX and isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("true", "1", "on", "yes"):
                normalized[definition.name] = True
            elif lowered in ("false", "0", "off", "no"):
                normalized[definition.name] = False
    return normalized


def validate_custom_data(
    definitions: Iterable[CustomFieldDefinition], data: Dict[str, Any]
) -> Dict[str, str]:
    """Return ``{field name: problem}``; empty when ``data`` fits the schema."""
    errors: Dict[str, str] = {}
    for definition in definitions:
        value = data.get(definition.name)
        if _is_blank(value):
            if definition.required:
                errors[definition.name] = "required"
            continue

        if definition.type is FieldType.NUMBER and _coerce_number(value) is None:
            errors[definition.name] = "must be a number"
        elif definition.type is FieldType.SELECT and str(value) not in definition.options:
            errors[definition.name] = f"must be one of: {', '.join(definition.options)}"
        elif definition.type is FieldType.CHECKBOX and not isinstance(value, bool):
            errors[definition.name] = "must be true or false"
        elif definition.type in (FieldType.TEXT, FieldType.TEXTAREA) and not isinstance(value, str):
            errors[definition.name] = "must be text"
    return errors
