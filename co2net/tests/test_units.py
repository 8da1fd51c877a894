"""Pin unit engine behavior: parsing, conversion, expressions and custom units."""

import pytest

from co2net.logic.unit_tables import LENGTH, MASS_FLOW, POWER, PRESSURE
from co2net.logic.units import (
    Quantity,
    UnitConversionError,
    base_unit,
    clear_unit,
    convert,
    define_unit,
    dimension_for_name,
    dimension_of,
    eval_to_string,
    evaluate,
    format_magnitude,
    init_units,
    is_compatible,
    parse_quantity,
)


# =============================================================================
# INITIALIZATION
# =============================================================================

class TestInitUnits:
    def test_init_is_memoized(self):
        assert init_units() is init_units()

    def test_table_has_core_units(self):
        table = init_units()
        for symbol in ("m", "km", "mi", "bar", "°C", "MW", "t/h", "MTPA", "ships per day"):
            assert symbol in table or dimension_of(symbol) is not None


# =============================================================================
# PARSING
# =============================================================================

class TestParseQuantity:
    def test_simple_value(self):
        q = parse_quantity("100 bar")
        assert q.magnitude == pytest.approx(100)
        assert q.si_value == pytest.approx(1.0e7)
        assert q.dimensions == PRESSURE

    @pytest.mark.parametrize("text,expected", [
        ("-5 °C", -5.0),
        ("+2.5 km", 2.5),
        (".5 m", 0.5),
        ("1e3 kW", 1000.0),
        ("12000000 Pa", 12000000.0),
    ])
    def test_signed_and_exponent_numbers(self, text, expected):
        assert parse_quantity(text).magnitude == pytest.approx(expected)

    def test_compound_unit(self):
        q = parse_quantity("10 kg/s")
        assert q.dimensions == MASS_FLOW
        assert q.to("t/h") == pytest.approx(36.0)

    def test_named_compound_unit(self):
        assert parse_quantity("5 W/m²*K").to("W/m2*K") == pytest.approx(5.0)

    def test_multi_word_unit(self):
        assert parse_quantity("2 ships per day").to("ships per day") == pytest.approx(2.0)

    @pytest.mark.parametrize("text", ["abc", "12", "12bar", "bar 12", ""])
    def test_rejects_non_unit_strings(self, text):
        with pytest.raises(UnitConversionError):
            parse_quantity(text)

    def test_unknown_unit(self):
        with pytest.raises(UnitConversionError, match="furlongs"):
            parse_quantity("12 furlongs")


# =============================================================================
# CONVERSION
# =============================================================================

class TestConvert:
    def test_mile_to_km(self):
        assert convert(1, "mi", "km") == pytest.approx(1.609344)

    def test_mile_to_m(self):
        assert convert(1, "mi", "m") == pytest.approx(1609.344)

    @pytest.mark.parametrize("value,from_unit,to_unit,expected", [
        (100, "°C", "°F", 212.0),
        (0, "°C", "K", 273.15),
        (32, "degF", "degC", 0.0),
        (300, "K", "C", 26.85),
    ])
    def test_temperature_offsets(self, value, from_unit, to_unit, expected):
        assert convert(value, from_unit, to_unit) == pytest.approx(expected, abs=1e-9)

    def test_mass_flow_per_annum(self):
        assert convert(1, "MTPA", "Mt/a") == pytest.approx(1.0)
        assert convert(1, "Mt/a", "kg/s") == pytest.approx(1.0e9 / (365.25 * 86400))

    def test_incompatible_dimensions(self):
        with pytest.raises(UnitConversionError, match="Cannot convert"):
            convert(1, "km", "kg")

    @pytest.mark.parametrize("unit_a,unit_b", [
        ("m", "ft"),
        ("km", "mi"),
        ("bar", "psi"),
        ("°C", "°F"),
        ("kW", "MW"),
        ("t/h", "kg/s"),
        ("m3/h", "m³/s"),
        ("MTPA", "t/h"),
        ("W/m²*K", "kW/(m^2*K)"),
    ])
    def test_round_trip(self, unit_a, unit_b):
        value = 123.456
        there = convert(value, unit_a, unit_b)
        assert convert(there, unit_b, unit_a) == pytest.approx(value, rel=1e-9)


class TestCompatibility:
    def test_same_dimension(self):
        assert is_compatible("km", "mi")
        assert is_compatible("MW", "kJ/s")

    def test_different_dimension(self):
        assert not is_compatible("km", "bar")

    def test_unknown_unit_is_not_compatible(self):
        assert not is_compatible("km", "parsec-ish")

    def test_dimension_names(self):
        assert dimension_for_name("length") == LENGTH
        assert dimension_for_name("power") == POWER
        assert dimension_for_name("massFlowrate") == dimension_for_name("mass_flow_rate")
        assert dimension_for_name("colour") is None

    def test_base_unit(self):
        assert base_unit("km") == "m"
        assert base_unit("MW") == "m^2*kg/s^3"
        assert base_unit("bar") == "kg/m/s^2"


# =============================================================================
# EXPRESSIONS
# =============================================================================

class TestEvaluate:
    @pytest.mark.parametrize("expression,expected", [
        ("1 mi as km", "1.60934 km"),
        ("18 kJ / 3 kg as kJ/kg", "6 kJ/kg"),
        ("2 km + 500 m", "2.5 km"),
        ("10 t/h / 5 t/h", "2"),
        ("(3 m)^2 as m^2", "9 m^2"),
        ("20 °C + 5 K", "25 °C"),
        ("1 MTPA as t/h", "114.077 t/h"),
        ("0.5 kW * 2 h as kWh", "1 kWh"),
        ("-(4 bar) as kPa", "-400 kPa"),
        ("5 s^-1", "5 s^-1"),
        ("1 m^-1 as km^-1", "1000 km^-1"),
    ])
    def test_expressions(self, expression, expected):
        assert eval_to_string(expression) == expected

    def test_flow_ratio_is_dimensionless(self):
        q = evaluate("3 Mt/a / 1 MTPA")
        assert q.dimensions.is_dimensionless()
        assert q.si_value == pytest.approx(3.0)

    def test_bare_unit_means_one(self):
        assert evaluate("km as m").magnitude == pytest.approx(1000.0)

    def test_negative_exponent_binds_to_unit(self):
        q = evaluate("5 s^-1")
        assert q.si_value == pytest.approx(5.0)
        assert q.si_value == pytest.approx(parse_quantity("5 s^-1").si_value)
        assert evaluate("2 m^+2").si_value == pytest.approx(2.0)

    @pytest.mark.parametrize("expression", [
        "",
        "2 km + 3 kg",
        "1 km as",
        "(2 m",
        "3 m ^ 2 m",
        "4 m / 0 s",
    ])
    def test_invalid_expressions(self, expression):
        with pytest.raises(UnitConversionError):
            evaluate(expression)


class TestCustomUnits:
    def test_define_and_clear(self):
        define_unit("ktpd", "1 kt/d")
        try:
            assert convert(24, "ktpd", "kt/h") == pytest.approx(1.0)
        finally:
            assert clear_unit("ktpd")
        with pytest.raises(UnitConversionError):
            convert(1, "ktpd", "kt/h")

    def test_clear_unknown_unit(self):
        assert clear_unit("never-defined") is False


# =============================================================================
# FORMATTING
# =============================================================================

class TestFormatMagnitude:
    @pytest.mark.parametrize("value,expected", [
        (1.609344, "1.60934"),
        (1609.344, "1609.34"),
        (6.0, "6"),
        (12000000.0, "12000000"),
        (0.0, "0"),
        (-0.25, "-0.25"),
        (0.000123456789, "0.000123457"),
    ])
    def test_six_significant_digits(self, value, expected):
        assert format_magnitude(value) == expected

    def test_quantity_format(self):
        assert Quantity(1.609344, "km").format() == "1.60934 km"
        assert Quantity(2.0).format() == "2"
