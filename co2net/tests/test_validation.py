"""Pin validation behavior: result kinds, bound messages, scopes and query targets."""

import logging

import pytest

from co2net.models import Block, Scope, Severity, ValidationKind
from co2net.logic.query_path import NotFoundError
from co2net.logic.schemas import COSTING_SET
from co2net.logic.validation import (
    ValidationEngine,
    get_enriched_block_from_validation,
    get_resolved_block_properties,
)

TEST_SCHEMA_SET = "test-v1"


@pytest.fixture
def engine(network):
    return ValidationEngine(network)


@pytest.fixture
def test_engine(network, test_registry, km_preferences):
    return ValidationEngine(network, registry=test_registry, preferences=km_preferences)


# =============================================================================
# BLOCK VALIDATION
# =============================================================================

class TestValidateBlock:
    def test_valid_value_is_formatted(self, test_engine):
        results = test_engine.validate_block("branch-1", 1, TEST_SCHEMA_SET)
        length = results["branch-1/blocks/1/length"]
        assert length.is_valid
        assert length.kind == ValidationKind.VALID
        assert length.value == "1.60934 km"
        assert length.raw_value == "1 mi"
        assert length.scope == Scope.BLOCK

    def test_every_schema_property_gets_a_result(self, test_engine):
        results = test_engine.validate_block("branch-1", 1, TEST_SCHEMA_SET)
        assert set(results) == {
            "branch-1/blocks/1/length",
            "branch-1/blocks/1/diameter",
            "branch-1/blocks/1/phase",
            "branch-1/blocks/1/quantity",
        }

    def test_exclusive_minimum(self, test_engine):
        result = test_engine.validate_block("branch-1", 2, TEST_SCHEMA_SET)["branch-1/blocks/2/length"]
        assert not result.is_valid
        assert result.kind == ValidationKind.CONSTRAINT_VIOLATION
        assert result.severity == Severity.ERROR
        assert result.message == "Value 150 m must be greater than 200 m"

    def test_inherited_value_records_scope(self, test_engine):
        result = test_engine.validate_block("branch-1", 2, TEST_SCHEMA_SET)["branch-1/blocks/2/diameter"]
        assert result.is_valid
        assert result.raw_value == "0.9 m"
        assert result.scope == Scope.BRANCH

    def test_absent_optional_is_valid(self, test_engine):
        result = test_engine.validate_block("branch-1", 1, TEST_SCHEMA_SET)["branch-1/blocks/1/phase"]
        assert result.is_valid
        assert result.value is None
        assert result.scope is None

    def test_missing_required(self, engine):
        result = engine.validate_block("branch-3", 0)["branch-3/blocks/0/diameter"]
        assert not result.is_valid
        assert result.kind == ValidationKind.MISSING_REQUIRED
        assert result.message == "Required property 'diameter' is missing for block type 'Pipe'"

    def test_schema_not_found_is_a_warning(self, engine):
        results = engine.validate_block("branch-1", 0)
        assert list(results) == ["branch-1/blocks/0/_schema"]
        result = results["branch-1/blocks/0/_schema"]
        assert result.is_valid
        assert result.kind == ValidationKind.SCHEMA_NOT_FOUND
        assert result.severity == Severity.WARNING
        assert result.message == "Schema not found for block type 'Cooler' in schema set 'v1.0-snapshot'"

    def test_overrides_change_display_unit(self, engine):
        result = engine.validate_block("branch-1", 1, overrides={"diameter": "mm"})["branch-1/blocks/1/diameter"]
        assert result.value == "500 mm"

    def test_unknown_address(self, engine):
        with pytest.raises(NotFoundError):
            engine.validate_block("branch-1", 7)

    def test_requires_network(self):
        with pytest.raises(ValueError):
            ValidationEngine().validate_block("branch-1", 0)


class TestValidateBlockDirect:
    def test_bounds_messages(self):
        results = ValidationEngine().validate_block_direct(
            {"type": "Compressor", "pressure": "-5 bar", "efficiency": 1.5}
        )
        assert results["Compressor/pressure"].message == "Value -5 bar must be greater than 0 bar"
        assert results["Compressor/efficiency"].message == "Value 1.5 is greater than maximum 1"
        assert results["Compressor/quantity"].is_valid

    def test_converts_before_bounds(self):
        results = ValidationEngine().validate_block_direct({"type": "Compressor", "pressure": "1000 kPa", "efficiency": 1})
        assert results["Compressor/pressure"].is_valid
        assert results["Compressor/pressure"].value == "10 bar"
        assert results["Compressor/efficiency"].is_valid

    def test_unconvertible_unit_is_type_mismatch(self, caplog):
        block = Block(type="Compressor", properties={"pressure": "12 furlongs", "efficiency": 0.5})
        with caplog.at_level(logging.WARNING, logger="co2net"):
            result = ValidationEngine().validate_block_direct(block)["Compressor/pressure"]
        assert result.kind == ValidationKind.TYPE_MISMATCH
        assert result.message == (
            "Property 'pressure' must be a number, but received \"12 furlongs\". "
            "Unit conversion may have failed."
        )
        assert "[Validation] Could not convert pressure" in caplog.text

    def test_wrong_dimension_is_type_mismatch(self):
        result = ValidationEngine().validate_block_direct({"type": "Reservoir", "pressure": "3 km"})
        assert result["Reservoir/pressure"].kind == ValidationKind.TYPE_MISMATCH

    def test_direct_uses_only_own_properties(self):
        results = ValidationEngine().validate_block_direct({"type": "Compressor"})
        assert results["Compressor/pressure"].kind == ValidationKind.MISSING_REQUIRED

    def test_enum(self, test_registry):
        engine = ValidationEngine(registry=test_registry)
        result = engine.validate_block_direct({"type": "Pipe", "length": "1 km", "phase": "solid"}, TEST_SCHEMA_SET)
        assert result["Pipe/phase"].kind == ValidationKind.CONSTRAINT_VIOLATION
        assert result["Pipe/phase"].message == "Property 'phase' must be one of: gas, dense (received 'solid')"
        assert result["Pipe/length"].is_valid

    def test_integer(self):
        results = ValidationEngine().validate_block_direct({"type": "Metering", "number_of_systems": 2.5}, COSTING_SET)
        assert results["Metering/number_of_systems"].kind == ValidationKind.CONSTRAINT_VIOLATION

    def test_normalized_type(self):
        results = ValidationEngine().validate_block_direct({"type": "compressor", "pressure": "10 bar", "efficiency": 0.7})
        assert all(result.is_valid for result in results.values())
        assert "Compressor/pressure" in results

    def test_no_schema(self):
        results = ValidationEngine().validate_block_direct({"type": "Cooler"})
        assert list(results) == ["Cooler/_schema"]


# =============================================================================
# QUERY AND NETWORK VALIDATION
# =============================================================================

class TestValidateQuery:
    def test_filtered_blocks_keep_original_indices(self, engine):
        results = engine.validate_query("branch-1/blocks[type=Pipe]")
        prefixes = {path.rsplit("/", 1)[0] for path in results}
        assert prefixes == {"branch-1/blocks/1", "branch-1/blocks/2"}

    def test_property_query_keeps_one_result(self, engine):
        results = engine.validate_query("branch-1/blocks/1/diameter")
        assert list(results) == ["branch-1/blocks/1/diameter"]

    def test_property_query_on_block_without_schema(self, engine):
        results = engine.validate_query("branch-1/blocks/0/outletTemperature")
        assert list(results) == ["branch-1/blocks/0/_schema"]

    def test_unit_overrides_in_query(self, engine):
        results = engine.validate_query("branch-1/blocks/1/diameter?units=diameter:mm")
        assert results["branch-1/blocks/1/diameter"].value == "500 mm"

    def test_branch_query(self, engine):
        results = engine.validate_query("branch-2")
        assert set(results) == {
            "branch-2/blocks/0/pressure",
            "branch-2/blocks/0/efficiency",
            "branch-2/blocks/0/quantity",
        }

    def test_network_query(self, engine):
        assert engine.validate_query("network") == engine.validate_network()

    def test_unknown_query(self, engine):
        with pytest.raises(NotFoundError):
            engine.validate_query("branch-9/blocks")

    def test_property_of_filtered_blocks(self, engine):
        results = engine.validate_query("branch-1/blocks[type=Pipe]/diameter")
        assert set(results) == {"branch-1/blocks/1/diameter", "branch-1/blocks/2/diameter"}
        assert results["branch-1/blocks/2/diameter"].scope.value == "branch"

    def test_blocks_across_node_list(self, engine):
        results = engine.validate_query("network/nodes[type=branch]/blocks")
        assert results == engine.validate_network()

    def test_property_across_node_list(self, engine):
        results = engine.validate_query("network/nodes[type=branch]/blocks/diameter")
        assert set(results) == {
            "branch-1/blocks/0/_schema",
            "branch-1/blocks/1/diameter",
            "branch-1/blocks/2/diameter",
            "branch-3/blocks/0/diameter",
        }

    def test_group_covers_member_branches(self, engine):
        results = engine.validate_query("group-1")
        prefixes = {path.rsplit("/", 1)[0] for path in results}
        assert prefixes == {"branch-1/blocks/0", "branch-1/blocks/1", "branch-1/blocks/2", "branch-2/blocks/0"}

    def test_query_without_blocks(self, engine):
        with pytest.raises(NotFoundError, match="No blocks addressed"):
            engine.validate_query("branch-1/blocks[type=Ship]")


class TestValidateNetwork:
    def test_counts(self, engine):
        results = engine.validate_network()
        assert len(results) == 19
        errors = [path for path, result in results.items() if not result.is_valid]
        assert errors == ["branch-3/blocks/0/diameter"]

    def test_scopes_across_levels(self, engine):
        results = engine.validate_network()
        assert results["branch-1/blocks/1/ambientTemperature"].scope == Scope.GROUP
        assert results["branch-1/blocks/1/uValue"].scope == Scope.GLOBAL
        assert results["branch-3/blocks/0/ambientTemperature"].raw_value == "10 °C"

    def test_summary_is_logged(self, engine, caplog):
        with caplog.at_level(logging.INFO, logger="co2net"):
            engine.validate_network()
        assert "[Validation] network: 19 results, 1 errors" in caplog.text


# =============================================================================
# RESULT HELPERS
# =============================================================================

class TestResultHelpers:
    def test_resolved_properties(self, engine):
        results = engine.validate_network()
        resolved = get_resolved_block_properties(results, "branch-1", 1)
        assert resolved["diameter"].scope == Scope.BLOCK
        assert resolved["elevationProfile"].value == "flat"
        assert "quantity" not in resolved

    def test_enriched_block(self, network, engine):
        results = engine.validate_network()
        block = network.get_branch("branch-1").blocks[1]
        enriched = get_enriched_block_from_validation(block, results, "branch-1", 1)
        assert enriched.properties == {
            "length": "1 mi",
            "diameter": "0.5 m",
            "elevationProfile": "flat",
            "uValue": "5 W/m²*K",
            "ambientTemperature": "12 °C",
        }
        assert block.properties == {"length": "1 mi", "diameter": "0.5 m"}
