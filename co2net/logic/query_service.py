"""Query entry points returning display-ready data.

``query_network`` evaluates a path and formats unit strings in the result
according to the layered unit preferences. ``get_block_schema_properties``
lists schema metadata for the blocks a path addresses.
"""

import logging
from typing import Any, Optional

from ..models import Network
from .query_path import block_addresses, evaluate, parse_query, to_data
from .schema_registry import SchemaRegistry, get_registry
from .schemas import SNAPSHOT_SET
from .scope_resolver import ScopeResolver
from .value_formatter import UnitMetadata, UnitPreferences, format_query_result

logger = logging.getLogger(__name__)


def _metadata_lookup(registry: SchemaRegistry, schema_set: str):
    def metadata_for(block_type: Optional[str], property_name: str) -> Optional[UnitMetadata]:
        if not block_type:
            return None
        meta = registry.get_property_metadata(schema_set, block_type, property_name)
        if meta is None:
            return None
        return UnitMetadata(dimension=meta.dimension, default_unit=meta.default_unit)
    return metadata_for


def query_network(network: Network, query: str, schema_set: str = SNAPSHOT_SET,
                  overrides: Optional[dict[str, str]] = None,
                  preferences: Optional[UnitPreferences] = None,
                  registry: Optional[SchemaRegistry] = None,
                  resolve_scopes: bool = False) -> Any:
    """Evaluate ``query`` and return formatted plain data.

    Unit overrides from the ``?units=`` suffix are merged with ``overrides``;
    explicit ones win. With ``resolve_scopes`` a single-property query that the
    block leaves unset falls back to branch, group and global values.
    """
    parsed = parse_query(query)
    registry = registry or get_registry()
    prefs = (preferences or UnitPreferences()).with_overrides({**parsed.unit_overrides, **(overrides or {})})
    metadata_for = _metadata_lookup(registry, schema_set)

    result = evaluate(network, parsed)

    if parsed.property_name is not None:
        block = ScopeResolver(network).block_at(parsed.branch_id, parsed.block_index)
        if result is None and resolve_scopes:
            resolved = ScopeResolver(network).resolve(parsed.branch_id, parsed.block_index, parsed.property_name)
            result = resolved.value if resolved is not None else None
        return format_query_result(
            to_data(result), prefs, block.type, parsed.property_name, metadata_for
        )

    logger.debug(f"[Query] Formatting result of '{parsed.path}'")
    return format_query_result(to_data(result), prefs, metadata_for=metadata_for)


def get_block_schema_properties(network: Network, query: str, schema_set: str = SNAPSHOT_SET,
                                registry: Optional[SchemaRegistry] = None) -> dict[str, dict[str, Any]]:
    """Schema metadata for every property of the addressed blocks.

    Keys are ``<branchId>/blocks/<index>/<property>``; filtered queries report
    the blocks' original indices. Blocks without a schema are skipped.
    """
    registry = registry or get_registry()
    parsed = parse_query(query)
    evaluate(network, parsed)

    properties: dict[str, dict[str, Any]] = {}
    for branch_id, index in block_addresses(network, parsed):
        block = network.get_branch(branch_id).blocks[index]
        schema = registry.get_schema(schema_set, block.type)
        if schema is None:
            logger.debug(f"[Query] No schema for {branch_id}/blocks/{index} ({block.type})")
            continue
        for name, meta in schema.properties.items():
            properties[f"{branch_id}/blocks/{index}/{name}"] = {
                "block_type": schema.block_type,
                "property": name,
                "required": meta.required,
                "title": meta.title,
                "dimension": meta.dimension,
                "default_unit": meta.default_unit,
                "min": meta.minimum,
                "max": meta.maximum,
            }
    return properties


def get_network_schemas(network: Network, schema_set: str = SNAPSHOT_SET,
                        registry: Optional[SchemaRegistry] = None) -> dict[str, dict[str, Any]]:
    """``get_block_schema_properties`` for every block of every branch."""
    properties: dict[str, dict[str, Any]] = {}
    for branch in network.branches():
        if branch.blocks:
            properties.update(get_block_schema_properties(network, f"{branch.id}/blocks", schema_set, registry))
    return properties
