"""Unit and dimension tables for the unit conversion engine.

Every unit is stored as a scale (and optional offset) onto the SI base units,
together with its dimension exponents. Named compound units (``W/m²*K``,
``ships per day``, ``MTPA``) are registered as whole strings so they resolve
before the compositional parser sees them.

The tables are built by ``build_unit_table()``; ``units.init_units()`` calls it
exactly once per process.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


# =============================================================================
# DIMENSIONS
# =============================================================================

_BASE_NAMES = ("length", "mass", "time", "current", "temperature", "amount")
_BASE_SYMBOLS = ("m", "kg", "s", "A", "K", "mol")


@dataclass(frozen=True)
class Dimensions:
    """Exponents of the SI base quantities.

    velocity = length^1 * time^-1 -> Dimensions(length=1, time=-1)
    """
    length: float = 0
    mass: float = 0
    time: float = 0
    current: float = 0
    temperature: float = 0
    amount: float = 0

    def as_tuple(self) -> tuple:
        return (self.length, self.mass, self.time, self.current, self.temperature, self.amount)

    def __mul__(self, other: Dimensions) -> Dimensions:
        return Dimensions(*(a + b for a, b in zip(self.as_tuple(), other.as_tuple())))

    def __truediv__(self, other: Dimensions) -> Dimensions:
        return Dimensions(*(a - b for a, b in zip(self.as_tuple(), other.as_tuple())))

    def __pow__(self, exp: float) -> Dimensions:
        return Dimensions(*(a * exp for a in self.as_tuple()))

    def is_dimensionless(self) -> bool:
        return self == DIMENSIONLESS

    def base_unit(self) -> str:
        """SI expression for these dimensions, e.g. ``kg*m^2/s^3``."""
        numerator = []
        denominator = []
        for symbol, exp in zip(_BASE_SYMBOLS, self.as_tuple()):
            if exp == 0:
                continue
            target = numerator if exp > 0 else denominator
            power = abs(exp)
            power_text = str(int(power)) if float(power).is_integer() else str(power)
            target.append(symbol if power == 1 else f"{symbol}^{power_text}")
        if not numerator and not denominator:
            return ""
        text = "*".join(numerator) if numerator else "1"
        if denominator:
            text += "/" + "/".join(denominator)
        return text

    def __repr__(self) -> str:
        parts = [
            f"{name}={exp:g}" for name, exp in zip(_BASE_NAMES, self.as_tuple()) if exp != 0
        ]
        return f"Dimensions({', '.join(parts)})"


DIMENSIONLESS = Dimensions()
LENGTH = Dimensions(length=1)
MASS = Dimensions(mass=1)
TIME = Dimensions(time=1)
CURRENT = Dimensions(current=1)
TEMPERATURE = Dimensions(temperature=1)
AMOUNT = Dimensions(amount=1)

AREA = LENGTH ** 2
VOLUME = LENGTH ** 3
FREQUENCY = DIMENSIONLESS / TIME
VELOCITY = LENGTH / TIME
ACCELERATION = VELOCITY / TIME
FORCE = MASS * ACCELERATION
PRESSURE = FORCE / AREA
ENERGY = FORCE * LENGTH
POWER = ENERGY / TIME
DENSITY = MASS / VOLUME
MASS_FLOW = MASS / TIME
VOLUMETRIC_FLOW = VOLUME / TIME
HEAT_TRANSFER_COEFF = POWER / AREA / TEMPERATURE
SPECIFIC_ENERGY = ENERGY / MASS


# Dimension names as they appear in block schemas. Several spellings of the
# same quantity exist across schema sets.
NAMED_DIMENSIONS: dict[str, Dimensions] = {
    "dimensionless": DIMENSIONLESS,
    "efficiency": DIMENSIONLESS,
    "length": LENGTH,
    "mass": MASS,
    "time": TIME,
    "temperature": TEMPERATURE,
    "area": AREA,
    "volume": VOLUME,
    "speed": VELOCITY,
    "velocity": VELOCITY,
    "pressure": PRESSURE,
    "energy": ENERGY,
    "power": POWER,
    "density": DENSITY,
    "mass_flow_rate": MASS_FLOW,
    "massFlowrate": MASS_FLOW,
    "mass_flow": MASS_FLOW,
    "volumetric_flow_rate": VOLUMETRIC_FLOW,
    "volumetricFlowrate": VOLUMETRIC_FLOW,
    "uValue": HEAT_TRANSFER_COEFF,
    "frequency": FREQUENCY,
    "ship-frequency": FREQUENCY,
}


# =============================================================================
# UNIT DEFINITIONS
# =============================================================================

@dataclass
class UnitDef:
    """A unit: ``si_value = value * to_si + offset``."""
    symbol: str
    name: str
    dimensions: Dimensions
    to_si: float
    offset: float = 0.0
    aliases: list[str] = field(default_factory=list)

    @property
    def is_affine(self) -> bool:
        return self.offset != 0.0


class UnitTable:
    """Symbol/alias -> UnitDef lookup with case-sensitive keys."""

    def __init__(self):
        self.units: dict[str, UnitDef] = {}

    def register(self, symbol: str, name: str, dimensions: Dimensions, to_si: float,
                 offset: float = 0.0, aliases: Optional[list[str]] = None) -> UnitDef:
        unit = UnitDef(symbol, name, dimensions, to_si, offset, list(aliases or []))
        self.units[symbol] = unit
        for alias in unit.aliases:
            self.units[alias] = unit
        return unit

    def remove(self, symbol: str) -> bool:
        unit = self.units.get(symbol)
        if unit is None:
            return False
        for key in [symbol, *unit.aliases]:
            if self.units.get(key) is unit:
                del self.units[key]
        return True

    def get(self, symbol: str) -> Optional[UnitDef]:
        return self.units.get(symbol)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self.units

    def __len__(self) -> int:
        return len(self.units)


_YEAR_S = 365.25 * 86400.0
_DAY_S = 86400.0
_HOUR_S = 3600.0


def build_unit_table() -> UnitTable:
    """Create the default unit table."""
    table = UnitTable()
    reg = table.register

    # --- Length
    reg("m", "meter", LENGTH, 1.0, aliases=["meter", "meters", "metre", "metres"])
    reg("km", "kilometer", LENGTH, 1000.0, aliases=["kilometer", "kilometers"])
    reg("cm", "centimeter", LENGTH, 0.01)
    reg("mm", "millimeter", LENGTH, 0.001)
    reg("in", "inch", LENGTH, 0.0254, aliases=["inch", "inches"])
    reg("ft", "foot", LENGTH, 0.3048, aliases=["foot", "feet"])
    reg("yd", "yard", LENGTH, 0.9144)
    reg("mi", "mile", LENGTH, 1609.344, aliases=["mile", "miles"])
    reg("nmi", "nautical mile", LENGTH, 1852.0)

    # --- Mass
    reg("kg", "kilogram", MASS, 1.0, aliases=["kilogram", "kilograms"])
    reg("g", "gram", MASS, 0.001, aliases=["gram", "grams"])
    reg("t", "tonne", MASS, 1000.0, aliases=["tonne", "tonnes"])
    reg("kt", "kilotonne", MASS, 1.0e6)
    reg("Mt", "megatonne", MASS, 1.0e9)
    reg("lb", "pound", MASS, 0.45359237, aliases=["lbm"])

    # --- Time
    reg("s", "second", TIME, 1.0, aliases=["sec", "second", "seconds"])
    reg("min", "minute", TIME, 60.0, aliases=["minute", "minutes"])
    reg("h", "hour", TIME, _HOUR_S, aliases=["hr", "hour", "hours"])
    reg("d", "day", TIME, _DAY_S, aliases=["day", "days"])
    reg("a", "annum", TIME, _YEAR_S, aliases=["yr", "year", "years", "annum"])

    # --- Temperature (affine)
    reg("K", "kelvin", TEMPERATURE, 1.0, aliases=["kelvin"])
    reg("°C", "celsius", TEMPERATURE, 1.0, 273.15, aliases=["degC", "C", "celsius", "Â°C"])
    reg("°F", "fahrenheit", TEMPERATURE, 5 / 9, 459.67 * 5 / 9, aliases=["degF", "F", "fahrenheit"])
    reg("delta_degC", "celsius difference", TEMPERATURE, 1.0, aliases=["ΔC"])

    # --- Area / volume
    reg("m2", "square meter", AREA, 1.0, aliases=["m²"])
    reg("km2", "square kilometer", AREA, 1.0e6, aliases=["km²"])
    reg("m3", "cubic meter", VOLUME, 1.0, aliases=["m³"])
    reg("L", "liter", VOLUME, 0.001, aliases=["l", "liter", "litre"])
    reg("bbl", "barrel", VOLUME, 0.158987294928)

    # --- Pressure
    reg("Pa", "pascal", PRESSURE, 1.0, aliases=["pascal"])
    reg("kPa", "kilopascal", PRESSURE, 1.0e3)
    reg("MPa", "megapascal", PRESSURE, 1.0e6)
    reg("bar", "bar", PRESSURE, 1.0e5, aliases=["bara"])
    reg("mbar", "millibar", PRESSURE, 100.0)
    reg("psi", "pound per square inch", PRESSURE, 6894.757293168, aliases=["psia"])
    reg("atm", "atmosphere", PRESSURE, 101325.0)

    # --- Energy / power
    reg("J", "joule", ENERGY, 1.0, aliases=["joule"])
    reg("kJ", "kilojoule", ENERGY, 1.0e3)
    reg("MJ", "megajoule", ENERGY, 1.0e6)
    reg("GJ", "gigajoule", ENERGY, 1.0e9)
    reg("Wh", "watt hour", ENERGY, _HOUR_S)
    reg("kWh", "kilowatt hour", ENERGY, 1.0e3 * _HOUR_S)
    reg("MWh", "megawatt hour", ENERGY, 1.0e6 * _HOUR_S)
    reg("W", "watt", POWER, 1.0, aliases=["watt"])
    reg("kW", "kilowatt", POWER, 1.0e3)
    reg("MW", "megawatt", POWER, 1.0e6)
    reg("GW", "gigawatt", POWER, 1.0e9)

    # --- Force
    reg("N", "newton", FORCE, 1.0)
    reg("kN", "kilonewton", FORCE, 1.0e3)

    # --- Electrical / amount
    reg("A", "ampere", CURRENT, 1.0)
    reg("mol", "mole", AMOUNT, 1.0)
    reg("kmol", "kilomole", AMOUNT, 1.0e3)

    # --- Named compound units
    reg("MTPA", "megatonne per annum", MASS_FLOW, 1.0e9 / _YEAR_S, aliases=["Mtpa", "Mt/yr"])
    reg("W/m²*K", "watt per square meter kelvin", HEAT_TRANSFER_COEFF, 1.0,
        aliases=["W/m2*K", "W/m^2*K", "W/(m²*K)", "W/(m2*K)", "W/(m^2*K)", "W/m2K", "W/m²K"])
    reg("ships per day", "ships per day", FREQUENCY, 1.0 / _DAY_S, aliases=["ship/d", "ships/day"])
    reg("%", "percent", DIMENSIONLESS, 0.01, aliases=["percent"])

    return table
