"""Recognize numbers, numeric strings and unit strings in property values."""

from dataclasses import dataclass
from typing import Any, Optional

from .units import UNIT_VALUE_PATTERN, UnitConversionError, parse_quantity


@dataclass
class ParsedValue:
    """Numeric part of a value, plus the unit string it came from if any."""
    numeric_value: float
    unit_string: Optional[str] = None

    @property
    def is_unit_string(self) -> bool:
        return self.unit_string is not None


def parse_value(value: Any) -> Optional[ParsedValue]:
    """Parse a raw property value.

    Numbers pass through, ``"1 mi"`` becomes a unit string, ``"0.7"`` a plain
    number. Anything else (enums, free text, booleans, None) returns None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return ParsedValue(float(value))
    if not isinstance(value, str):
        return None

    text = value.strip()
    match = UNIT_VALUE_PATTERN.match(text)
    if match:
        return ParsedValue(float(match.group(1)), text)
    try:
        return ParsedValue(float(text))
    except ValueError:
        return None


def convert_to_number(value: Any, target_unit: Optional[str]) -> Optional[float]:
    """Numeric value of ``value`` expressed in ``target_unit``.

    Plain numbers are assumed to already be in the target unit. Raises
    ``UnitConversionError`` when a unit string cannot be converted; returns None
    when the value is not numeric at all.
    """
    parsed = parse_value(value)
    if parsed is None:
        return None
    if not parsed.is_unit_string:
        return parsed.numeric_value
    quantity = parse_quantity(parsed.unit_string)
    if not target_unit:
        if quantity.dimensions.is_dimensionless():
            return quantity.si_value
        raise UnitConversionError(
            f"No target unit to convert '{parsed.unit_string}' into"
        )
    return quantity.to(target_unit)
