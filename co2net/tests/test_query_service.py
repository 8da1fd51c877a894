"""Pin the query entry points: formatted results and per-block schema listings."""

import pytest

from co2net.logic.query_path import NotFoundError
from co2net.logic.query_service import get_block_schema_properties, get_network_schemas, query_network
from co2net.logic.value_formatter import UnitPreferences


class TestQueryNetwork:
    def test_units_suffix(self, network):
        assert query_network(network, "branch-1/blocks/1/length?units=length:km") == "1.60934 km"

    def test_no_preference_keeps_original(self, network):
        assert query_network(network, "branch-1/blocks/1/length") == "1 mi"

    def test_block_type_preference(self, network):
        prefs = UnitPreferences(block_types={"Pipe": {"diameter": "mm"}})
        assert query_network(network, "branch-1/blocks/1/diameter", preferences=prefs) == "500 mm"

    def test_explicit_overrides_beat_suffix(self, network):
        result = query_network(network, "branch-1/blocks/1/length?units=length:km", overrides={"length": "m"})
        assert result == "1609.34 m"

    def test_whole_block(self, network, km_preferences):
        assert query_network(network, "branch-1/blocks/1", preferences=km_preferences) == {
            "type": "Pipe",
            "length": "1.60934 km",
            "diameter": "0.5 m",
        }

    def test_absent_property(self, network):
        assert query_network(network, "branch-1/blocks/2/ambientTemperature") is None

    def test_resolve_scopes(self, network):
        result = query_network(network, "branch-1/blocks/2/ambientTemperature", resolve_scopes=True)
        assert result == "12 °C"

    def test_filtered_list(self, network, km_preferences):
        result = query_network(network, "branch-1/blocks[type=Pipe]", preferences=km_preferences)
        assert [block["length"] for block in result] == ["1.60934 km", "0.15 km"]

    def test_plain_fields_untouched(self, network):
        assert query_network(network, "network/edges") == [
            {"source": "branch-1", "target": "branch-2"},
            {"source": "branch-2", "target": "branch-3"},
        ]
        assert query_network(network, "branch-2/blocks/0/efficiency") == 0.8

    @pytest.mark.parametrize("query", ["branch-9/blocks", "branch-1/blocks/5/length"])
    def test_not_found(self, network, query):
        with pytest.raises(NotFoundError):
            query_network(network, query)


class TestBlockSchemaProperties:
    def test_filtered_blocks_use_original_indices(self, network):
        properties = get_block_schema_properties(network, "branch-1/blocks[type=Pipe]")
        assert "branch-1/blocks/1/diameter" in properties
        assert "branch-1/blocks/2/uValue" in properties
        assert not any(key.startswith("branch-1/blocks/0/") for key in properties)

    def test_entry_shape(self, network):
        entry = get_block_schema_properties(network, "branch-2/blocks/0")["branch-2/blocks/0/efficiency"]
        assert entry == {
            "block_type": "Compressor",
            "property": "efficiency",
            "required": True,
            "title": "Efficiency",
            "dimension": "efficiency",
            "default_unit": None,
            "min": 0,
            "max": 1,
        }

    def test_custom_registry(self, network, test_registry):
        properties = get_block_schema_properties(network, "branch-3", "test-v1", test_registry)
        assert set(properties) == {
            "branch-3/blocks/0/length",
            "branch-3/blocks/0/diameter",
            "branch-3/blocks/0/phase",
            "branch-3/blocks/0/quantity",
        }

    def test_network_schemas(self, network):
        properties = get_network_schemas(network)
        assert len(properties) == 18
        assert properties["branch-3/blocks/0/diameter"]["default_unit"] == "m"
