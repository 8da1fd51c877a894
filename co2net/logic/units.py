"""Unit conversion engine.

Parses ``"<number> <unit>"`` strings, converts between units of the same
dimension (including affine temperature scales), and evaluates compound
dimensioned expressions::

    >>> eval_to_string("1 mi as km")
    '1.60934 km'
    >>> eval_to_string("18 kJ / 3 kg as kJ/kg")
    '6 kJ/kg'

All failures raise ``UnitConversionError``. Callers that present values to
users catch it at that boundary and fall back to the raw value.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Optional, Union

from .unit_tables import (
    DIMENSIONLESS,
    NAMED_DIMENSIONS,
    Dimensions,
    UnitTable,
    build_unit_table,
)

logger = logging.getLogger(__name__)

Number = Union[int, float]

UNIT_VALUE_PATTERN = re.compile(r"^([+-]?\d*\.?\d+(?:[eE][+-]?\d+)?)\s+(.+)$")

_SUPERSCRIPTS = {"⁻": "-", "¹": "1", "²": "2", "³": "3", "⁴": "4"}


class UnitConversionError(ValueError):
    """A unit string, expression or conversion could not be handled."""


# =============================================================================
# TABLE INITIALIZATION
# =============================================================================

_table: Optional[UnitTable] = None
_resolved: dict[str, "ResolvedUnit"] = {}


def init_units() -> UnitTable:
    """Build the unit table on first use. Later calls return the same table."""
    global _table
    if _table is None:
        _table = build_unit_table()
        logger.info(f"[Units] Initialized unit table with {len(_table)} symbols")
    return _table


def define_unit(name: str, expression: str) -> None:
    """Register a custom unit defined by an expression, e.g. ``define_unit("MTPA", "1 Mt/a")``."""
    quantity = evaluate(expression)
    table = init_units()
    table.register(name, name, quantity.dimensions, quantity.si_value)
    _resolved.clear()
    logger.debug(f"[Units] Defined unit '{name}' = {expression}")


def clear_unit(name: str) -> bool:
    """Remove a unit from the table. Returns False when it was not defined."""
    removed = init_units().remove(name)
    _resolved.clear()
    return removed


# =============================================================================
# UNIT EXPRESSIONS
# =============================================================================

@dataclass(frozen=True)
class ResolvedUnit:
    """A unit expression reduced to scale, offset and dimensions."""
    expression: str
    scale: float
    dimensions: Dimensions
    offset: float = 0.0

    def to_si(self, value: float) -> float:
        return value * self.scale + self.offset

    def from_si(self, si_value: float) -> float:
        return (si_value - self.offset) / self.scale


_UNIT_TOKEN = re.compile(
    r"\s*(?:"
    r"(?P<num>[-+]?\d+(?:\.\d+)?)"
    r"|(?P<sup>[⁻¹²³⁴]+)"
    r"|(?P<op>[*/^()·])"
    r"|(?P<name>[A-Za-z°µΩ%Â][A-Za-z0-9°µΩ_%Â]*)"
    r")"
)


def _tokenize_unit(text: str) -> list[tuple[str, str]]:
    tokens = []
    pos = 0
    text = text.strip()
    while pos < len(text):
        match = _UNIT_TOKEN.match(text, pos)
        if not match or match.end() == pos:
            raise UnitConversionError(f"Unexpected character in unit '{text}' at position {pos}")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _UnitParser:
    """Recursive descent over ``name (^n)? ((*|/) name (^n)?)*`` with parentheses."""

    def __init__(self, text: str, table: UnitTable):
        self.text = text
        self.table = table
        self.tokens = _tokenize_unit(text)
        self.pos = 0

    def parse(self) -> tuple[float, Dimensions]:
        scale, dims = self._product()
        if self.pos != len(self.tokens):
            raise UnitConversionError(f"Unexpected token in unit '{self.text}'")
        return scale, dims

    def _peek(self) -> Optional[tuple[str, str]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _product(self) -> tuple[float, Dimensions]:
        scale, dims = self._factor()
        while True:
            token = self._peek()
            if token is None or token[0] != "op" or token[1] not in "*/·":
                return scale, dims
            self.pos += 1
            other_scale, other_dims = self._factor()
            if token[1] == "/":
                scale, dims = scale / other_scale, dims / other_dims
            else:
                scale, dims = scale * other_scale, dims * other_dims

    def _factor(self) -> tuple[float, Dimensions]:
        scale, dims = self._atom()
        token = self._peek()
        if token is not None and token[0] == "sup":
            self.pos += 1
            exp = float("".join(_SUPERSCRIPTS[c] for c in token[1]))
            return scale ** exp, dims ** exp
        if token == ("op", "^"):
            self.pos += 1
            exp_token = self._peek()
            if exp_token is None or exp_token[0] != "num":
                raise UnitConversionError(f"Expected exponent in unit '{self.text}'")
            self.pos += 1
            exp = float(exp_token[1])
            return scale ** exp, dims ** exp
        return scale, dims

    def _atom(self) -> tuple[float, Dimensions]:
        token = self._peek()
        if token is None:
            raise UnitConversionError(f"Unexpected end of unit '{self.text}'")
        self.pos += 1
        if token == ("op", "("):
            result = self._product()
            if self._peek() != ("op", ")"):
                raise UnitConversionError(f"Unbalanced parentheses in unit '{self.text}'")
            self.pos += 1
            return result
        if token[0] == "num" and token[1] == "1":
            return 1.0, DIMENSIONLESS
        if token[0] != "name":
            raise UnitConversionError(f"Unexpected '{token[1]}' in unit '{self.text}'")
        unit = self.table.get(token[1])
        if unit is None:
            raise UnitConversionError(f"Unknown unit '{token[1]}'")
        return unit.to_si, unit.dimensions


def resolve_unit(unit: str) -> ResolvedUnit:
    """Reduce a unit expression to scale/offset/dimensions.

    A whole-string table hit wins (named compound units, affine units); anything
    else is parsed compositionally. Affine offsets only apply to a unit used on
    its own.
    """
    key = unit.strip()
    cached = _resolved.get(key)
    if cached is not None:
        return cached

    table = init_units()
    if not key:
        resolved = ResolvedUnit("", 1.0, DIMENSIONLESS)
    else:
        direct = table.get(key)
        if direct is not None:
            resolved = ResolvedUnit(key, direct.to_si, direct.dimensions, direct.offset)
        else:
            scale, dims = _UnitParser(key, table).parse()
            resolved = ResolvedUnit(key, scale, dims)

    _resolved[key] = resolved
    return resolved


def dimension_of(unit: str) -> Dimensions:
    return resolve_unit(unit).dimensions


def base_unit(unit: str) -> str:
    """SI base-unit expression with the same dimensions as ``unit``."""
    return dimension_of(unit).base_unit()


def dimension_for_name(name: str) -> Optional[Dimensions]:
    """Dimensions for a schema dimension name such as ``"length"`` or ``"uValue"``."""
    return NAMED_DIMENSIONS.get(name)


def is_compatible(unit_a: str, unit_b: str) -> bool:
    """True when both unit expressions resolve and share dimensions."""
    try:
        return dimension_of(unit_a) == dimension_of(unit_b)
    except UnitConversionError:
        return False


# =============================================================================
# QUANTITY
# =============================================================================

def format_magnitude(value: float, significant: int = 6) -> str:
    """Render a magnitude with ``significant`` digits and no trailing zeros."""
    if value == 0 or not math.isfinite(value):
        return "0" if value == 0 else str(value)
    digits = significant - int(math.floor(math.log10(abs(value)))) - 1
    rounded = round(value, digits)
    if abs(rounded) >= 1e15 or abs(rounded) < 1e-9:
        return f"{rounded:.{significant}g}"
    text = f"{rounded:.{max(digits, 0)}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


class Quantity:
    """A magnitude in a unit, stored internally in SI."""

    def __init__(self, value: Number, unit: str = ""):
        self.unit = unit.strip()
        resolved = resolve_unit(self.unit)
        self.dimensions = resolved.dimensions
        self.si_value = resolved.to_si(float(value))

    @classmethod
    def from_si(cls, si_value: float, dimensions: Dimensions, unit: Optional[str] = None) -> Quantity:
        """Build a quantity from an SI magnitude, displayed in ``unit`` (default: SI base)."""
        quantity = cls.__new__(cls)
        quantity.unit = unit if unit is not None else dimensions.base_unit()
        quantity.dimensions = dimensions
        quantity.si_value = si_value
        return quantity

    @classmethod
    def parse(cls, text: str) -> Quantity:
        return parse_quantity(text)

    @property
    def magnitude(self) -> float:
        return resolve_unit(self.unit).from_si(self.si_value)

    def to(self, unit: str) -> float:
        """Magnitude expressed in ``unit``."""
        target = resolve_unit(unit)
        if target.dimensions != self.dimensions:
            raise UnitConversionError(
                f"Cannot convert '{self.unit or 'dimensionless'}' to '{unit}': "
                f"{self.dimensions} vs {target.dimensions}"
            )
        return target.from_si(self.si_value)

    def convert_to(self, unit: str) -> Quantity:
        self.to(unit)
        return Quantity.from_si(self.si_value, self.dimensions, unit.strip())

    def is_compatible(self, unit: str) -> bool:
        try:
            return dimension_of(unit) == self.dimensions
        except UnitConversionError:
            return False

    def format(self, significant: int = 6) -> str:
        magnitude = format_magnitude(self.magnitude, significant)
        return f"{magnitude} {self.unit}" if self.unit else magnitude

    # --- arithmetic

    def _coerce(self, other) -> Quantity:
        if isinstance(other, Quantity):
            return other
        if isinstance(other, (int, float)):
            return Quantity(other)
        raise TypeError(f"Unsupported operand: {other!r}")

    def __add__(self, other) -> Quantity:
        other = self._coerce(other)
        if other.dimensions != self.dimensions:
            raise UnitConversionError(f"Cannot add '{other.unit}' to '{self.unit}'")
        return self._shifted(other, 1)

    def __sub__(self, other) -> Quantity:
        other = self._coerce(other)
        if other.dimensions != self.dimensions:
            raise UnitConversionError(f"Cannot subtract '{other.unit}' from '{self.unit}'")
        return self._shifted(other, -1)

    def _shifted(self, other: Quantity, sign: int) -> Quantity:
        # Offsets are absolute positions; the right operand contributes a difference.
        delta = other.si_value - resolve_unit(other.unit).offset
        return Quantity.from_si(self.si_value + sign * delta, self.dimensions, self.unit)

    def __mul__(self, other) -> Quantity:
        other = self._coerce(other)
        return Quantity.from_si(
            self.si_value * other.si_value,
            self.dimensions * other.dimensions,
            _compose_unit(self, other, "*"),
        )

    def __truediv__(self, other) -> Quantity:
        other = self._coerce(other)
        if other.si_value == 0:
            raise UnitConversionError("Division by zero")
        return Quantity.from_si(
            self.si_value / other.si_value,
            self.dimensions / other.dimensions,
            _compose_unit(self, other, "/"),
        )

    def __pow__(self, exp: Number) -> Quantity:
        unit = ""
        if self.unit:
            power = f"{exp:g}"
            unit = f"{_wrap(self.unit)}^{power}"
        return Quantity.from_si(self.si_value ** exp, self.dimensions ** exp, unit)

    def __neg__(self) -> Quantity:
        return Quantity.from_si(-self.si_value, self.dimensions, self.unit)

    def __repr__(self) -> str:
        return f"Quantity({self.format()!r})"


def _wrap(unit: str) -> str:
    return f"({unit})" if any(op in unit for op in "*/^") else unit


def _compose_unit(left: Quantity, right: Quantity, op: str) -> str:
    dims = left.dimensions * right.dimensions if op == "*" else left.dimensions / right.dimensions
    if dims.is_dimensionless():
        return ""
    if not right.unit:
        return left.unit
    if not left.unit:
        return f"1/{_wrap(right.unit)}" if op == "/" else right.unit
    return f"{left.unit}{op}{_wrap(right.unit)}"


def parse_quantity(text: str) -> Quantity:
    """Parse ``"<signed float> <unit>"``."""
    match = UNIT_VALUE_PATTERN.match(text.strip())
    if not match:
        raise UnitConversionError(f"Not a unit value: '{text}'")
    return Quantity(float(match.group(1)), match.group(2))


def convert(value: Number, from_unit: str, to_unit: str) -> float:
    """Convert a magnitude between two units of the same dimension."""
    return Quantity(value, from_unit).to(to_unit)


# =============================================================================
# EXPRESSION EVALUATION
# =============================================================================

_EXPR_TOKEN = re.compile(
    r"\s*(?:"
    r"(?P<num>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<sup>[⁻¹²³⁴]+)"
    r"|(?P<op>[-+*/^()·])"
    r"|(?P<name>[A-Za-z°µΩ%Â][A-Za-z0-9°µΩ_%Â]*)"
    r")"
)


class _ExpressionParser:
    """Arithmetic over dimensioned numbers; units bind tighter than operators."""

    def __init__(self, text: str):
        self.text = text
        self.table = init_units()
        self.tokens: list[tuple[str, str, int, int]] = []
        pos = 0
        while pos < len(text):
            if text[pos:].strip() == "":
                break
            match = _EXPR_TOKEN.match(text, pos)
            if not match or match.end() == pos:
                raise UnitConversionError(f"Unexpected character in expression '{text}' at {pos}")
            kind = match.lastgroup
            self.tokens.append((kind, match.group(kind), match.start(kind), match.end()))
            pos = match.end()
        self.pos = 0

    def _peek(self, offset: int = 0):
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def _is(self, token, kind: str, value: Optional[str] = None) -> bool:
        return token is not None and token[0] == kind and (value is None or token[1] == value)

    def parse(self) -> Quantity:
        result = self._sum()
        token = self._peek()
        if self._is(token, "name", "as"):
            target = self.text[token[3]:].strip()
            if not target:
                raise UnitConversionError(f"Missing target unit in '{self.text}'")
            return result.convert_to(target)
        if token is not None:
            raise UnitConversionError(f"Unexpected '{token[1]}' in expression '{self.text}'")
        return result

    def _sum(self) -> Quantity:
        left = self._term()
        while self._is(self._peek(), "op") and self._peek()[1] in "+-":
            op = self._peek()[1]
            self.pos += 1
            right = self._term()
            left = left + right if op == "+" else left - right
        return left

    def _term(self) -> Quantity:
        left = self._power()
        while self._is(self._peek(), "op") and self._peek()[1] in "*/·":
            op = self._peek()[1]
            self.pos += 1
            right = self._power()
            left = left / right if op == "/" else left * right
        return left

    def _power(self) -> Quantity:
        base = self._unary()
        if self._is(self._peek(), "op", "^"):
            self.pos += 1
            exponent = self._unary()
            if not exponent.dimensions.is_dimensionless():
                raise UnitConversionError("Exponent must be dimensionless")
            return base ** exponent.si_value
        return base

    def _unary(self) -> Quantity:
        if self._is(self._peek(), "op", "-"):
            self.pos += 1
            return -self._unary()
        if self._is(self._peek(), "op", "+"):
            self.pos += 1
            return self._unary()
        return self._primary()

    def _primary(self) -> Quantity:
        token = self._peek()
        if token is None:
            raise UnitConversionError(f"Unexpected end of expression '{self.text}'")
        if self._is(token, "op", "("):
            self.pos += 1
            inner = self._sum()
            if not self._is(self._peek(), "op", ")"):
                raise UnitConversionError(f"Unbalanced parentheses in '{self.text}'")
            self.pos += 1
            return inner
        if self._is(token, "num"):
            self.pos += 1
            value = float(token[1])
            unit = self._unit_text()
            return Quantity(value, unit) if unit else Quantity(value)
        if self._is(token, "name") and token[1] != "as":
            # Bare unit: "km as m" means one km.
            unit = self._unit_text()
            return Quantity(1.0, unit)
        raise UnitConversionError(f"Unexpected '{token[1]}' in expression '{self.text}'")

    def _unit_text(self) -> str:
        """Consume the unit following a number and return its source text."""
        start = self._peek()
        if not self._is(start, "name") or start[1] == "as":
            return ""

        # Multi-word units ("ships per day")
        names = []
        index = self.pos
        while self._is(self._peek(index - self.pos), "name") and self.tokens[index][1] != "as":
            names.append(self.tokens[index][1])
            index += 1
        for count in range(len(names), 1, -1):
            if " ".join(names[:count]) in self.table:
                self.pos += count
                return " ".join(names[:count])

        begin = start[2]
        end = start[3]
        self.pos += 1
        while True:
            token = self._peek()
            if self._is(token, "sup"):
                end = token[3]
                self.pos += 1
                continue
            if self._is(token, "op", "^") and self._is(self._peek(1), "num"):
                end = self._peek(1)[3]
                self.pos += 2
                continue
            if (self._is(token, "op", "^") and self._is(self._peek(1), "op")
                    and self._peek(1)[1] in "+-" and self._is(self._peek(2), "num")):
                end = self._peek(2)[3]
                self.pos += 3
                continue
            if (self._is(token, "op") and token[1] in "*/·"
                    and self._is(self._peek(1), "name") and self._peek(1)[1] != "as"):
                end = self._peek(1)[3]
                self.pos += 2
                continue
            break
        return self.text[begin:end].strip()


def evaluate(expression: str) -> Quantity:
    """Evaluate a dimensioned expression, optionally ending in ``as <unit>``."""
    if not expression or not expression.strip():
        raise UnitConversionError("Empty expression")
    return _ExpressionParser(expression.strip()).parse()


def eval_to_string(expression: str, significant: int = 6) -> str:
    return evaluate(expression).format(significant)
