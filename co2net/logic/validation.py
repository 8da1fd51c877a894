"""Validation of resolved block properties against schemas.

Every property a schema declares gets exactly one result, keyed
``<blockPath>/<propertyName>``:

- missing_required: a required property resolved nowhere
- constraint_violation: outside numeric bounds, not an integer, not an allowed enum value
- type_mismatch: wrong primitive type (typically a unit string that failed to convert)
- valid: carries the formatted value, the raw value and the supplying scope

A block whose type has no schema gets a single ``<blockPath>/_schema`` warning.
"""

import logging
from typing import Any, Optional, Union

from ..models import (
    Block,
    Network,
    ResolvedProperty,
    Scope,
    Severity,
    ValidationKind,
    ValidationResult,
)
from .query_path import NotFoundError, QueryPath, addressed_property, block_addresses, evaluate, parse_query
from .schema_registry import BlockSchema, PropertyMetadata, PropertyType, SchemaRegistry, get_registry
from .schemas import SNAPSHOT_SET
from .scope_resolver import ScopeResolver
from .units import UnitConversionError, format_magnitude, is_compatible
from .value_formatter import UnitMetadata, UnitPreferences, format_value
from .value_parser import convert_to_number, parse_value

logger = logging.getLogger(__name__)

ValidationResults = dict[str, ValidationResult]


# =============================================================================
# PROPERTY CHECKS
# =============================================================================

def _with_unit(value: float, unit: Optional[str]) -> str:
    text = format_magnitude(value)
    return f"{text} {unit}" if unit else text


def _check_bounds(meta: PropertyMetadata, number: float) -> Optional[str]:
    unit = meta.unit
    if meta.minimum is not None:
        if meta.exclusive_minimum and number <= meta.minimum:
            return (f"Value {_with_unit(number, unit)} must be greater than "
                    f"{_with_unit(meta.minimum, unit)}")
        if not meta.exclusive_minimum and number < meta.minimum:
            return (f"Value {_with_unit(number, unit)} is less than minimum "
                    f"{_with_unit(meta.minimum, unit)}")
    if meta.maximum is not None:
        if meta.exclusive_maximum and number >= meta.maximum:
            return (f"Value {_with_unit(number, unit)} must be less than "
                    f"{_with_unit(meta.maximum, unit)}")
        if not meta.exclusive_maximum and number > meta.maximum:
            return (f"Value {_with_unit(number, unit)} is greater than maximum "
                    f"{_with_unit(meta.maximum, unit)}")
    return None


def _check_number(meta: PropertyMetadata, value: Any) -> Optional[tuple[ValidationKind, str]]:
    if isinstance(value, bool):
        return ValidationKind.TYPE_MISMATCH, f"Property '{meta.name}' must be a number, but received {value!r}"
    try:
        number = convert_to_number(value, meta.unit)
    except UnitConversionError as e:
        logger.warning(f"[Validation] Could not convert {meta.name}={value!r} to '{meta.unit}': {e}")
        number = None
    if number is None:
        return (ValidationKind.TYPE_MISMATCH,
                f"Property '{meta.name}' must be a number, but received \"{value}\". "
                f"Unit conversion may have failed.")
    if meta.integer and not float(number).is_integer():
        return ValidationKind.CONSTRAINT_VIOLATION, f"Property '{meta.name}' must be an integer, got {value}"
    message = _check_bounds(meta, number)
    if message:
        return ValidationKind.CONSTRAINT_VIOLATION, message
    return None


def _check_string(meta: PropertyMetadata, value: Any) -> Optional[tuple[ValidationKind, str]]:
    if not isinstance(value, str):
        return ValidationKind.TYPE_MISMATCH, f"Property '{meta.name}' must be a string, but received {value!r}"
    parsed = parse_value(value)
    if meta.unit and parsed is not None and parsed.is_unit_string:
        unit = value.strip().split(None, 1)[1]
        if not is_compatible(unit, meta.unit):
            return (ValidationKind.CONSTRAINT_VIOLATION,
                    f"Property '{meta.name}' has unit '{unit}', which is not a {meta.dimension} unit")
    return None


def _check_enum(meta: PropertyMetadata, value: Any) -> Optional[tuple[ValidationKind, str]]:
    if str(value) not in meta.enum_values:
        allowed = ", ".join(meta.enum_values)
        return (ValidationKind.CONSTRAINT_VIOLATION,
                f"Property '{meta.name}' must be one of: {allowed} (received '{value}')")
    return None


def _check_boolean(meta: PropertyMetadata, value: Any) -> Optional[tuple[ValidationKind, str]]:
    if isinstance(value, bool) or (isinstance(value, str) and value.lower() in ("true", "false")):
        return None
    return ValidationKind.TYPE_MISMATCH, f"Property '{meta.name}' must be a boolean, but received {value!r}"


_CHECKS = {
    PropertyType.NUMBER: _check_number,
    PropertyType.STRING: _check_string,
    PropertyType.ENUM: _check_enum,
    PropertyType.BOOLEAN: _check_boolean,
}


def check_property(meta: PropertyMetadata, value: Any) -> Optional[tuple[ValidationKind, str]]:
    """(kind, message) for an invalid value, None when it satisfies the declaration."""
    return _CHECKS[meta.type](meta, value)


# =============================================================================
# ENGINE
# =============================================================================

class ValidationEngine:
    """Validates blocks of one network snapshot against a schema registry."""

    def __init__(self, network: Optional[Network] = None,
                 registry: Optional[SchemaRegistry] = None,
                 preferences: Optional[UnitPreferences] = None):
        self.network = network
        self.registry = registry or get_registry()
        self.preferences = preferences or UnitPreferences()
        self.resolver = ScopeResolver(network) if network is not None else None

    def _require_network(self) -> Network:
        if self.network is None:
            raise ValueError("This operation needs a network snapshot")
        return self.network

    # --- result assembly

    def _validate_values(self, block_type: str, block_path: str, schema: BlockSchema,
                         values: dict[str, ResolvedProperty],
                         preferences: UnitPreferences) -> ValidationResults:
        results: ValidationResults = {}
        for name, meta in schema.properties.items():
            path = f"{block_path}/{name}"
            resolved = values.get(name)

            if resolved is None or resolved.value is None:
                if meta.required:
                    results[path] = ValidationResult(
                        is_valid=False,
                        kind=ValidationKind.MISSING_REQUIRED,
                        severity=Severity.ERROR,
                        message=f"Required property '{name}' is missing for block type '{block_type}'",
                    )
                else:
                    results[path] = ValidationResult(is_valid=True)
                continue

            formatted = format_value(
                resolved.value, name, schema.block_type, preferences,
                UnitMetadata(dimension=meta.dimension, default_unit=meta.default_unit),
            )
            problem = check_property(meta, resolved.value)
            if problem is not None:
                kind, message = problem
                results[path] = ValidationResult(
                    is_valid=False,
                    kind=kind,
                    severity=Severity.ERROR,
                    message=message,
                    value=formatted,
                    raw_value=resolved.value,
                    scope=resolved.scope,
                )
            else:
                results[path] = ValidationResult(
                    is_valid=True,
                    value=formatted,
                    raw_value=resolved.value,
                    scope=resolved.scope,
                )
        return results

    def _schema_not_found(self, block_type: str, block_path: str, schema_set: str) -> ValidationResults:
        logger.debug(f"[Validation] No schema for '{block_type}' in '{schema_set}'")
        return {
            f"{block_path}/_schema": ValidationResult(
                is_valid=True,
                kind=ValidationKind.SCHEMA_NOT_FOUND,
                severity=Severity.WARNING,
                message=f"Schema not found for block type '{block_type}' in schema set '{schema_set}'",
            )
        }

    # --- public operations

    def validate_block_direct(self, block: Union[Block, dict], schema_set: str = SNAPSHOT_SET,
                              overrides: Optional[dict[str, str]] = None) -> ValidationResults:
        """Validate a free-standing block using only its own properties.

        Results are keyed ``<blockType>/<propertyName>``.
        """
        if isinstance(block, dict):
            block = Block.model_validate(block)
        schema = self.registry.get_schema(schema_set, block.type)
        if schema is None:
            return self._schema_not_found(block.type, block.type, schema_set)
        values = {
            name: ResolvedProperty(value=value, scope=Scope.BLOCK)
            for name, value in block.properties.items()
            if value is not None
        }
        return self._validate_values(
            block.type, schema.block_type, schema, values, self.preferences.with_overrides(overrides)
        )

    def validate_block(self, branch_id: str, block_index: int, schema_set: str = SNAPSHOT_SET,
                       overrides: Optional[dict[str, str]] = None) -> ValidationResults:
        """Validate one block of the network with scope-resolved values."""
        self._require_network()
        block_path = f"{branch_id}/blocks/{block_index}"
        block = self.resolver.block_at(branch_id, block_index)

        schema = self.registry.get_schema(schema_set, block.type)
        if schema is None:
            return self._schema_not_found(block.type, block_path, schema_set)

        values = self.resolver.resolve_from_schema(branch_id, block_index, schema.required, schema.optional)
        return self._validate_values(
            block.type, block_path, schema, values, self.preferences.with_overrides(overrides)
        )

    def validate_query(self, query: Union[str, QueryPath], schema_set: str = SNAPSHOT_SET,
                       overrides: Optional[dict[str, str]] = None) -> ValidationResults:
        """Validate every block a query addresses.

        A property query (``b/blocks/0/length``, ``b/blocks[type=Pipe]/length``)
        keeps only that property's result for each block. Filtered block lists
        are mapped back to their original indices, and group nodes cover their
        member branches. Raises ``NotFoundError`` when the query reaches no block.
        """
        network = self._require_network()
        parsed = query if isinstance(query, QueryPath) else parse_query(query)
        merged = {**parsed.unit_overrides, **(overrides or {})}

        if parsed.is_network_path and len(parsed.segments) == 1:
            return self.validate_network(schema_set, merged)

        evaluate(network, parsed)
        addresses = block_addresses(network, parsed)
        if not addresses:
            raise NotFoundError(f"No blocks addressed by '{parsed.path}'", parsed.raw)

        property_name = addressed_property(parsed)
        results: ValidationResults = {}
        for branch_id, index in addresses:
            block_results = self.validate_block(branch_id, index, schema_set, merged)
            if property_name is not None:
                prefix = f"{branch_id}/blocks/{index}/"
                block_results = {
                    path: result for path, result in block_results.items()
                    if path in (f"{prefix}{property_name}", f"{prefix}_schema")
                }
            results.update(block_results)

        self._log_summary(parsed.path, results)
        return results

    def validate_network(self, schema_set: str = SNAPSHOT_SET,
                         overrides: Optional[dict[str, str]] = None) -> ValidationResults:
        """Validate every block of every branch."""
        network = self._require_network()
        results: ValidationResults = {}
        for branch in network.branches():
            for index in range(len(branch.blocks)):
                results.update(self.validate_block(branch.id, index, schema_set, overrides))
        self._log_summary("network", results)
        return results

    @staticmethod
    def _log_summary(target: str, results: ValidationResults) -> None:
        errors = sum(1 for r in results.values() if not r.is_valid)
        logger.info(f"[Validation] {target}: {len(results)} results, {errors} errors")


# =============================================================================
# RESULT HELPERS
# =============================================================================

def get_resolved_block_properties(results: ValidationResults, branch_id: str,
                                  block_index: int) -> dict[str, ResolvedProperty]:
    """Resolved raw values for one block, taken from a validation result map."""
    prefix = f"{branch_id}/blocks/{block_index}/"
    resolved = {}
    for path, result in results.items():
        if not path.startswith(prefix) or result.scope is None:
            continue
        name = path[len(prefix):]
        if "/" in name or name == "_schema":
            continue
        resolved[name] = ResolvedProperty(value=result.raw_value, scope=result.scope)
    return resolved


def get_enriched_block_from_validation(block: Block, results: ValidationResults,
                                       branch_id: str, block_index: int) -> Block:
    """The block with values inherited from outer scopes filled in."""
    for name, resolved in get_resolved_block_properties(results, branch_id, block_index).items():
        if resolved.scope != Scope.BLOCK and block.properties.get(name) is None:
            block = block.with_property(name, resolved.value)
    return block
