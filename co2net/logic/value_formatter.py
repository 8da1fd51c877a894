"""Display formatting of property values according to unit preferences.

The preferred unit for a property is found by walking an ordered list of
lookups and taking the first hit:

1. per-call override for the property name (``?units=length:km``)
2. block-type preference from config (``unit_preferences.block_types``)
3. dimension preference from config (``unit_preferences.dimensions``)
4. the schema's default unit

With no preferred unit the original string is kept untouched.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .type_normalization import normalize_block_type
from .units import UnitConversionError, format_magnitude, parse_quantity
from .value_parser import parse_value

logger = logging.getLogger(__name__)


@dataclass
class UnitMetadata:
    """The slice of schema metadata formatting needs."""
    dimension: Optional[str] = None
    default_unit: Optional[str] = None


@dataclass
class UnitPreferences:
    """Layered unit preferences for one request."""
    query_overrides: dict[str, str] = field(default_factory=dict)
    block_types: dict[str, dict[str, str]] = field(default_factory=dict)
    dimensions: dict[str, str] = field(default_factory=dict)
    property_dimensions: dict[str, str] = field(default_factory=dict)

    def with_overrides(self, overrides: Optional[dict[str, str]]) -> "UnitPreferences":
        """Copy with extra per-call overrides merged on top of the existing ones."""
        if not overrides:
            return self
        return UnitPreferences(
            query_overrides={**self.query_overrides, **overrides},
            block_types=self.block_types,
            dimensions=self.dimensions,
            property_dimensions=self.property_dimensions,
        )

    def dimension_for(self, property_name: str, metadata: Optional[UnitMetadata]) -> Optional[str]:
        if metadata is not None and metadata.dimension:
            return metadata.dimension
        return self.property_dimensions.get(property_name)


# =============================================================================
# PREFERRED UNIT LOOKUP
# =============================================================================

UnitLookup = Callable[[str, Optional[str], UnitPreferences, Optional[UnitMetadata]], Optional[str]]


def _from_query_override(prop, block_type, prefs, metadata):
    return prefs.query_overrides.get(prop)


def _from_block_type(prop, block_type, prefs, metadata):
    if not block_type:
        return None
    by_type = prefs.block_types.get(block_type) or prefs.block_types.get(normalize_block_type(block_type))
    return by_type.get(prop) if by_type else None


def _from_dimension(prop, block_type, prefs, metadata):
    dimension = prefs.dimension_for(prop, metadata)
    return prefs.dimensions.get(dimension) if dimension else None


def _from_schema_default(prop, block_type, prefs, metadata):
    return metadata.default_unit if metadata is not None else None


UNIT_LOOKUPS: list[UnitLookup] = [
    _from_query_override,
    _from_block_type,
    _from_dimension,
    _from_schema_default,
]


def preferred_unit(property_name: str, block_type: Optional[str],
                   preferences: UnitPreferences,
                   metadata: Optional[UnitMetadata] = None) -> Optional[str]:
    """First non-empty unit from ``UNIT_LOOKUPS``."""
    for lookup in UNIT_LOOKUPS:
        unit = lookup(property_name, block_type, preferences, metadata)
        if unit:
            return unit
    return None


# =============================================================================
# FORMATTING
# =============================================================================

def format_value(value: Any, property_name: str, block_type: Optional[str],
                 preferences: UnitPreferences,
                 metadata: Optional[UnitMetadata] = None) -> Optional[str]:
    """Format one value for display.

    Unit strings are converted to the preferred unit; numbers and other scalars
    are returned as strings. A failed conversion is logged and the original
    string returned.
    """
    if value is None:
        return None
    parsed = parse_value(value)
    if parsed is None or not parsed.is_unit_string:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float):
            return format_magnitude(value)
        return str(value)

    unit = preferred_unit(property_name, block_type, preferences, metadata)
    if not unit:
        return parsed.unit_string

    try:
        return parse_quantity(parsed.unit_string).convert_to(unit).format()
    except UnitConversionError as e:
        logger.warning(
            f"[Units] Failed to convert {property_name} from '{parsed.unit_string}' to '{unit}': {e}"
        )
        return parsed.unit_string


def format_query_result(result: Any, preferences: UnitPreferences,
                        block_type: Optional[str] = None,
                        property_name: Optional[str] = None,
                        metadata_for: Optional[Callable[[Optional[str], str], Optional[UnitMetadata]]] = None) -> Any:
    """Recursively format unit strings inside a plain-data query result.

    Strings are only formatted when their property name is known (a mapping key
    or an explicit ``property_name``); numbers are left alone. ``metadata_for``
    supplies schema metadata for a (block type, property) pair.
    """
    if result is None or isinstance(result, (bool, int, float)):
        return result

    if isinstance(result, str):
        if property_name is None:
            return result
        metadata = metadata_for(block_type, property_name) if metadata_for else None
        return format_value(result, property_name, block_type, preferences, metadata)

    if isinstance(result, list):
        return [
            format_query_result(item, preferences, block_type, None, metadata_for)
            for item in result
        ]

    if isinstance(result, dict):
        current_type = result.get("type") if isinstance(result.get("type"), str) else block_type
        formatted = {}
        for key, value in result.items():
            if key in ("type", "id") or not isinstance(value, str):
                formatted[key] = format_query_result(value, preferences, current_type, None, metadata_for)
            else:
                formatted[key] = format_query_result(value, preferences, current_type, key, metadata_for)
        return formatted

    return result
