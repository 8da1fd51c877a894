"""Shared fixtures for the co2net test suite.

Builds small in-memory network snapshots and a test schema set. Loads the REAL
default tenant config (tenants/default/config.yaml) where config values matter.
"""

import sys
from pathlib import Path

import pytest

# Ensure the project root is importable when running from a checkout
PACKAGE_DIR = Path(__file__).resolve().parent.parent
PROJECT_ROOT = PACKAGE_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from co2net.models import Network
from co2net.logic.schema_registry import SchemaRegistry, block_schema, enum, number
from co2net.logic.value_formatter import UnitPreferences


NETWORK_DATA = {
    "id": "demo",
    "label": "Demo network",
    "nodes": [
        {
            "type": "group",
            "id": "group-1",
            "label": "Onshore",
            "branches": ["branch-1", "branch-2", "ghost-branch"],
            "properties": {"ambientTemperature": "12 °C", "pressure": "90 bar"},
        },
        {
            "type": "branch",
            "id": "branch-1",
            "label": "Trunk line",
            "parentId": "group-1",
            "properties": {"diameter": "0.9 m"},
            "blocks": [
                {"type": "Cooler", "outletTemperature": "30 °C"},
                {"type": "Pipe", "length": "1 mi", "diameter": "0.5 m"},
                {"type": "Pipe", "length": "150 m"},
            ],
        },
        {
            "type": "branch",
            "id": "branch-2",
            "label": "Compression",
            "blocks": [
                {"type": "Compressor", "pressure": "120 bar", "efficiency": 0.8},
            ],
        },
        {
            "type": "branch",
            "id": "branch-3",
            "label": "Spur",
            "blocks": [
                {"type": "Pipe"},
            ],
        },
    ],
    "edges": [
        {"source": "branch-1", "target": "branch-2"},
        {"source": "branch-2", "target": "branch-3"},
    ],
    "globalProperties": {
        "ambientTemperature": "10 °C",
        "uValue": "5 W/m²*K",
        "elevationProfile": "flat",
    },
}

TEST_SCHEMA_SET = "test-v1"


# =============================================================================
# NETWORK FIXTURES
# =============================================================================

@pytest.fixture
def network():
    """Group with two member branches (one dangling member id), plus an ungrouped branch."""
    return Network.model_validate(NETWORK_DATA)


@pytest.fixture
def two_node_network():
    """One branch and one group, nothing else."""
    return Network.model_validate({
        "nodes": [
            {"type": "branch", "id": "b", "parentId": "g", "blocks": [{"type": "Pipe", "length": "1 mi"}]},
            {"type": "group", "id": "g", "branches": ["b"]},
        ],
    })


@pytest.fixture
def layered_network():
    """Property P set on every level for branch 'b', block 0."""
    return Network.model_validate({
        "nodes": [
            {"type": "group", "id": "g", "branches": ["b"], "properties": {"P": "group-value"}},
            {
                "type": "branch",
                "id": "b",
                "parentId": "g",
                "properties": {"P": "branch-value"},
                "blocks": [{"type": "Pipe", "P": "block-value"}],
            },
        ],
        "globalProperties": {"P": "global-value"},
    })


# =============================================================================
# SCHEMA / PREFERENCE FIXTURES
# =============================================================================

@pytest.fixture
def test_registry():
    """Registry with a single test schema set: Pipe needs length > 200 m."""
    registry = SchemaRegistry()
    registry.register(TEST_SCHEMA_SET, block_schema(
        "Pipe",
        number("length", gt=200, dimension="length", default_unit="m", title="Length"),
        number("diameter", gt=0, required=False, dimension="length", default_unit="m"),
        enum("phase", "gas", "dense", required=False),
    ))
    return registry


@pytest.fixture
def km_preferences():
    """Pipe lengths displayed in km."""
    return UnitPreferences(block_types={"Pipe": {"length": "km"}})
