"""Exact money value type used throughout the ledger engine."""

from decimal import (
    ROUND_DOWN,
    ROUND_HALF_EVEN,
    Context,
    Decimal,
    DivisionByZero,
    Inexact,
    InvalidOperation,
    Overflow,
)
from functools import total_ordering
from typing import Any

from pydantic_core import core_schema

# Balances within this distance of zero are treated as settled.
SETTLEMENT_EPSILON = Decimal("0.000001")

# Default rounding quantum for divided amounts (cents).
MINOR_UNIT = Decimal("0.01")

# Significant digits carried by money arithmetic.
PRECISION = 60

# Sums and differences must be exact: a result that needs more than
# PRECISION digits raises decimal.Inexact instead of being rounded.
_EXACT = Context(prec=PRECISION, traps=[Inexact, InvalidOperation, DivisionByZero, Overflow])

# Division and quantization in allocate() round on purpose. Truncation keeps
# a quotient from being pushed up across a quantum boundary.
_ROUNDING = Context(
    prec=PRECISION, rounding=ROUND_DOWN, traps=[InvalidOperation, DivisionByZero, Overflow]
)


@total_ordering
class Money:
    """
    An exact decimal amount of money.

    Amounts are never quantized implicitly: sums and differences keep full
    precision (up to PRECISION significant digits, beyond which they raise
    decimal.Inexact rather than round). Rounding only happens in allocate(),
    where the remainder is reconciled back so the parts always add up to the
    original amount.
    """

    __slots__ = ("_amount",)

    def __init__(self, amount: "Money | Decimal | int | str | float" = 0):
        self._amount = _to_decimal(amount)

    @classmethod
    def of(cls, value: Any) -> "Money":
        """Coerce a value into Money (returns Money instances unchanged)."""
        if isinstance(value, Money):
            return value
        return cls(value)

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @property
    def amount(self) -> Decimal:
        return self._amount

    def is_settled(self, epsilon: Decimal = SETTLEMENT_EPSILON) -> bool:
        """True when the amount is within epsilon of zero."""
        return self._amount.copy_abs() <= epsilon

    def is_positive(self) -> bool:
        return self._amount > 0

    def quantize(self, quantum: Decimal = MINOR_UNIT) -> "Money":
        """Round to the given quantum using banker's rounding."""
        return Money(
            self._amount.quantize(quantum, rounding=ROUND_HALF_EVEN, context=_ROUNDING)
        )

    def allocate(self, parts: int, quantum: Decimal = MINOR_UNIT) -> list["Money"]:
        """
        Split this amount evenly into `parts` shares.

        Each share starts at the amount divided by `parts`, truncated toward
        zero to a multiple of `quantum`. The leftover is handed out one
        quantum at a time to the first shares, and any residue finer than
        `quantum` goes to the first share. Shares never cross zero and
        always sum to exactly this amount.

        Example:
            Money("100").allocate(3) -> [33.34, 33.33, 33.33]
            Money("0.07").allocate(9) -> [0.01] * 7 + [0.00] * 2
        """
        if parts <= 0:
            raise ValueError(f"Cannot allocate money into {parts} parts")

        base = _ROUNDING.divide(self._amount, parts).quantize(
            quantum, rounding=ROUND_DOWN, context=_ROUNDING
        )
        remainder = _EXACT.subtract(self._amount, _EXACT.multiply(base, parts))
        if not remainder:
            return [Money(base) for _ in range(parts)]

        step = quantum.copy_sign(remainder)
        # Truncation keeps |remainder| below parts * quantum, so steps < parts
        steps = int(_ROUNDING.divide(remainder, step).to_integral_value(rounding=ROUND_DOWN))
        residue = _EXACT.subtract(remainder, _EXACT.multiply(step, steps))

        shares = [_EXACT.add(base, step) if i < steps else base for i in range(parts)]
        shares[0] = _EXACT.add(shares[0], residue)
        return [Money(share) for share in shares]

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def __add__(self, other: Any) -> "Money":
        if isinstance(other, Money):
            return Money(_EXACT.add(self._amount, other._amount))
        if isinstance(other, int | Decimal):
            return Money(_EXACT.add(self._amount, other))
        return NotImplemented

    # sum() starts from 0
    __radd__ = __add__

    def __sub__(self, other: Any) -> "Money":
        if isinstance(other, Money):
            return Money(_EXACT.subtract(self._amount, other._amount))
        if isinstance(other, int | Decimal):
            return Money(_EXACT.subtract(self._amount, other))
        return NotImplemented

    def __rsub__(self, other: Any) -> "Money":
        if isinstance(other, int | Decimal):
            return Money(_EXACT.subtract(other, self._amount))
        return NotImplemented

    def __neg__(self) -> "Money":
        return Money(self._amount.copy_negate())

    def __abs__(self) -> "Money":
        return Money(self._amount.copy_abs())

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Money):
            return self._amount == other._amount
        if isinstance(other, int | Decimal):
            return self._amount == other
        return NotImplemented

    def __lt__(self, other: Any) -> bool:
        if isinstance(other, Money):
            return self._amount < other._amount
        if isinstance(other, int | Decimal):
            return self._amount < other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._amount)

    def __bool__(self) -> bool:
        return self._amount != 0

    def __repr__(self) -> str:
        return f"Money('{self._amount}')"

    def __str__(self) -> str:
        return str(self._amount)

    # ------------------------------------------------------------------
    # pydantic integration
    # ------------------------------------------------------------------

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any):
        return core_schema.no_info_plain_validator_function(
            _validate,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


def _validate(value: Any) -> Money:
    try:
        return Money.of(value)
    except TypeError as e:
        raise ValueError(str(e)) from e


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Money):
        return value.amount
    if isinstance(value, bool):
        raise TypeError("Money cannot be built from a bool")
    if isinstance(value, float):
        # Go through str() so 0.1 becomes Decimal("0.1"), not its binary expansion
        value = str(value)
    if isinstance(value, Decimal | int | str):
        try:
            result = Decimal(value)
        except InvalidOperation as e:
            raise ValueError(f"Invalid money amount: {value!r}") from e
        if not result.is_finite():
            raise ValueError(f"Money amount must be finite, got {value!r}")
        return result
    raise TypeError(f"Cannot build Money from {type(value).__name__}")
