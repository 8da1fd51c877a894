"""Schema registry: expected properties per schema set and block type.

Schemas are declared statically in ``co2net.logic.schemas`` and registered once
when the process-wide registry is first requested.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .type_normalization import normalize_block_type_with_overrides

logger = logging.getLogger(__name__)


class PropertyType(str, Enum):
    NUMBER = "number"
    STRING = "string"
    ENUM = "enum"
    BOOLEAN = "boolean"


@dataclass
class PropertyMetadata:
    """Declared constraints and display hints for one block property."""
    name: str
    type: PropertyType
    required: bool = True
    dimension: Optional[str] = None
    default_unit: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False
    enum_values: list[str] = field(default_factory=list)
    integer: bool = False

    @property
    def unit(self) -> Optional[str]:
        """Unit bounds are expressed in (the default unit, when it has one)."""
        return self.default_unit or None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "required": self.required}
        for key in ("dimension", "default_unit", "title", "description"):
            value = getattr(self, key)
            if value:
                data[key] = value
        if self.minimum is not None:
            data["min"] = self.minimum
            data["exclusive_min"] = self.exclusive_minimum
        if self.maximum is not None:
            data["max"] = self.maximum
            data["exclusive_max"] = self.exclusive_maximum
        if self.enum_values:
            data["enum"] = list(self.enum_values)
        if self.integer:
            data["integer"] = True
        return data


@dataclass
class BlockSchema:
    """Ordered property declarations for one block type."""
    block_type: str
    properties: dict[str, PropertyMetadata] = field(default_factory=dict)
    description: str = ""

    @property
    def required(self) -> list[str]:
        return [name for name, meta in self.properties.items() if meta.required]

    @property
    def optional(self) -> list[str]:
        return [name for name, meta in self.properties.items() if not meta.required]

    def property(self, name: str) -> Optional[PropertyMetadata]:
        return self.properties.get(name)


# =============================================================================
# DECLARATION HELPERS
# =============================================================================

def number(name: str, *, gt: Optional[float] = None, ge: Optional[float] = None,
           lt: Optional[float] = None, le: Optional[float] = None,
           integer: bool = False, required: bool = True, **annotations) -> PropertyMetadata:
    """Numeric property. ``gt``/``lt`` are exclusive bounds, ``ge``/``le`` inclusive."""
    if gt is not None and ge is not None:
        raise ValueError(f"Property '{name}' declares both gt and ge")
    if lt is not None and le is not None:
        raise ValueError(f"Property '{name}' declares both lt and le")
    return PropertyMetadata(
        name=name,
        type=PropertyType.NUMBER,
        required=required,
        minimum=gt if gt is not None else ge,
        exclusive_minimum=gt is not None,
        maximum=lt if lt is not None else le,
        exclusive_maximum=lt is not None,
        integer=integer,
        **annotations,
    )


def string(name: str, *, required: bool = True, **annotations) -> PropertyMetadata:
    return PropertyMetadata(name=name, type=PropertyType.STRING, required=required, **annotations)


def enum(name: str, *values: str, required: bool = True, **annotations) -> PropertyMetadata:
    return PropertyMetadata(
        name=name, type=PropertyType.ENUM, required=required,
        enum_values=list(values), **annotations,
    )


def boolean(name: str, *, required: bool = True, **annotations) -> PropertyMetadata:
    return PropertyMetadata(name=name, type=PropertyType.BOOLEAN, required=required, **annotations)


def block_schema(block_type: str, *properties: PropertyMetadata, description: str = "") -> BlockSchema:
    """Build a schema; every block type also accepts an optional ``quantity``."""
    declared = {prop.name: prop for prop in properties}
    declared.setdefault("quantity", number("quantity", required=False, title="Quantity"))
    return BlockSchema(block_type=block_type, properties=declared, description=description)


# =============================================================================
# REGISTRY
# =============================================================================

class SchemaRegistry:
    """Schema set -> block type -> BlockSchema."""

    def __init__(self, type_overrides: Optional[dict[str, str]] = None):
        self._sets: dict[str, dict[str, BlockSchema]] = {}
        self.type_overrides = type_overrides

    def register(self, schema_set: str, schema: BlockSchema) -> None:
        self._sets.setdefault(schema_set, {})[schema.block_type] = schema

    def register_set(self, schema_set: str, schemas: list[BlockSchema]) -> None:
        for schema in schemas:
            self.register(schema_set, schema)

    def normalize_type(self, block_type: str) -> str:
        return normalize_block_type_with_overrides(block_type, self.type_overrides)

    def get_schema(self, schema_set: str, block_type: str) -> Optional[BlockSchema]:
        """Schema for a block type (normalized first), or None."""
        schemas = self._sets.get(schema_set)
        if not schemas or not block_type:
            return None
        return schemas.get(block_type) or schemas.get(self.normalize_type(block_type))

    def get_property_metadata(self, schema_set: str, block_type: str,
                              property_name: str) -> Optional[PropertyMetadata]:
        schema = self.get_schema(schema_set, block_type)
        return schema.property(property_name) if schema else None

    def list_schema_sets(self) -> list[str]:
        return sorted(self._sets)

    def list_block_types(self, schema_set: str) -> list[str]:
        return sorted(self._sets.get(schema_set, {}))

    def has_schema_set(self, schema_set: str) -> bool:
        return schema_set in self._sets

    def get_schema_metadata(self, schema_set: str, block_type: str) -> Optional[dict[str, Any]]:
        """Serializable summary of one schema."""
        schema = self.get_schema(schema_set, block_type)
        if schema is None:
            return None
        return {
            "block_type": schema.block_type,
            "schema_set": schema_set,
            "required": schema.required,
            "optional": schema.optional,
            "properties": {name: meta.to_dict() for name, meta in schema.properties.items()},
        }


_registry: Optional[SchemaRegistry] = None


def build_default_registry() -> SchemaRegistry:
    from .schemas import SCHEMA_SETS

    registry = SchemaRegistry()
    for schema_set, schemas in SCHEMA_SETS.items():
        registry.register_set(schema_set, schemas)
    logger.info(
        f"[Schema] Registered {len(SCHEMA_SETS)} schema sets: "
        f"{', '.join(registry.list_schema_sets())}"
    )
    return registry


def get_registry() -> SchemaRegistry:
    """Process-wide registry of the built-in schema sets."""
    global _registry
    if _registry is None:
        _registry = build_default_registry()
    return _registry
