"""Logic module for network queries, scope resolution and validation."""

from .query_path import NotFoundError, MISSING, evaluate, parse_query, match_original_indices
from .scope_resolver import ScopeResolver
from .schema_registry import SchemaRegistry, get_registry
from .units import Quantity, UnitConversionError, convert, eval_to_string, parse_quantity
from .validation import ValidationEngine
from .value_formatter import UnitPreferences, format_value
from .query_service import query_network, get_block_schema_properties

__all__ = [
    'NotFoundError',
    'MISSING',
    'evaluate',
    'parse_query',
    'match_original_indices',
    'ScopeResolver',
    'SchemaRegistry',
    'get_registry',
    'Quantity',
    'UnitConversionError',
    'convert',
    'eval_to_string',
    'parse_quantity',
    'ValidationEngine',
    'UnitPreferences',
    'format_value',
    'query_network',
    'get_block_schema_properties',
]
