"""Built-in block schema declarations, keyed by schema set."""

from .costing_v1 import COSTING_SCHEMAS
from .snapshot_v1 import SNAPSHOT_SCHEMAS

SNAPSHOT_SET = "v1.0-snapshot"
COSTING_SET = "v1.0-costing"

SCHEMA_SETS = {
    SNAPSHOT_SET: SNAPSHOT_SCHEMAS,
    COSTING_SET: COSTING_SCHEMAS,
}

__all__ = ["SCHEMA_SETS", "SNAPSHOT_SET", "COSTING_SET"]
