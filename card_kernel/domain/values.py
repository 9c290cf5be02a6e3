"""
Values -- The Decimal Engine.

Responsibility:
    Provides Money, the single fixed-point monetary type used by every
    calculation in the card core, together with the day-count interest
    primitive.  All rounding in the system happens here and nowhere else.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by validation, engines and services.  No outward dependencies
    except card_kernel.exceptions.

Invariants enforced:
    - Scale: every Money amount carries exactly 2 fractional digits.
    - Rounding: ROUND_HALF_UP (half away from zero), applied once per
      operation, never to unrounded intermediates across operations.
    - Bound: |amount| <= 10^(P-2) - 0.01 for total precision P (default 12,
      i.e. +/-9,999,999,999.99).
    - No binary floats: float input is a TypeError.

Failure modes:
    - MoneyRangeError when a rounded result exceeds the precision bound.
    - ZeroDivisorError on division by zero (precondition violation).
    - TypeError on float/bool input or arithmetic with non-Money operands.
    - ValueError on non-numeric or non-finite input.

Audit relevance:
    Legacy balances were held in signed packed-decimal fields of fixed
    width.  Every precision defect in this domain traces back to rounding
    at the wrong step, so the round-once contract of each operation is the
    audit anchor for parity with legacy statement output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from card_kernel.exceptions import MoneyRangeError, ZeroDivisorError

SCALE = 2
ROUNDING = ROUND_HALF_UP
DEFAULT_PRECISION = 12
DAYS_IN_YEAR = 365

_QUANTUM = Decimal("0.01")
_ZERO = Decimal("0.00")

# Working precision for unrounded intermediates.  Wide enough that the
# single final rounding is the only one that matters.
_WORK_PRECISION = 50


def max_magnitude(precision: int = DEFAULT_PRECISION) -> Decimal:
    """Largest representable absolute amount for a total precision."""
    if precision <= SCALE:
        raise ValueError(f"precision must exceed scale {SCALE}, got {precision}")
    return Decimal(10) ** (precision - SCALE) - _QUANTUM


def to_decimal(raw: Decimal | int | str | Money) -> Decimal:
    """Coerce an accepted raw value to Decimal without rounding."""
    if isinstance(raw, Money):
        return raw.amount
    if isinstance(raw, bool) or isinstance(raw, float):
        raise TypeError(f"Money does not accept {type(raw).__name__} input: {raw!r}")
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, int):
        value = Decimal(raw)
    elif isinstance(raw, str):
        try:
            value = Decimal(raw.strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {raw!r}") from e
    else:
        raise TypeError(f"Unsupported amount type: {type(raw).__name__}")
    if not value.is_finite():
        raise ValueError(f"Amount must be finite: {raw!r}")
    return value


def _round(value: Decimal, precision: int) -> Decimal:
    bound = max_magnitude(precision)
    # Anything at or beyond bound + 1 is out of range whatever the rounding.
    if abs(value) >= bound + 1:
        raise MoneyRangeError(value, bound)
    rounded = value.quantize(_QUANTUM, rounding=ROUNDING)
    if abs(rounded) > bound:
        raise MoneyRangeError(rounded, bound)
    if rounded == 0:
        return _ZERO
    return rounded


@dataclass(frozen=True, slots=True, order=True)
class Money:
    """
    Fixed-point monetary amount.

    Contract:
        Constructing a Money always scales and rounds the amount.  Every
        arithmetic operation returns a new Money that has been re-scaled and
        re-rounded, so unrounded values never cross an operation boundary.

    Guarantees:
        - Immutable, hashable and totally ordered by amount.
        - ``amount`` is a Decimal with exponent -2.
        - Negative zero is normalised to 0.00.
        - Construction is idempotent: Money.of(Money.of(x)) == Money.of(x).

    Non-goals:
        - No currency.  The card core is single-currency (USD).
    """

    amount: Decimal
    precision: int = field(default=DEFAULT_PRECISION, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "amount", _round(to_decimal(self.amount), self.precision)
        )

    @classmethod
    def of(
        cls,
        raw: Decimal | int | str | Money,
        precision: int = DEFAULT_PRECISION,
    ) -> Money:
        """Scale and round a raw value to a Money."""
        return cls(to_decimal(raw), precision)

    @classmethod
    def zero(cls, precision: int = DEFAULT_PRECISION) -> Money:
        return cls(_ZERO, precision)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    def __add__(self, other: object) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount + other.amount, self.precision)

    def __sub__(self, other: object) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount - other.amount, self.precision)

    def __mul__(self, factor: object) -> Money:
        if isinstance(factor, (Money, float, bool)) or not isinstance(
            factor, (Decimal, int)
        ):
            return NotImplemented
        with localcontext() as ctx:
            ctx.prec = _WORK_PRECISION
            product = self.amount * Decimal(factor)
        return Money(product, self.precision)

    __rmul__ = __mul__

    def __neg__(self) -> Money:
        return Money(-self.amount, self.precision)

    def negate(self) -> Money:
        return -self

    def __abs__(self) -> Money:
        return Money(abs(self.amount), self.precision)

    def divide(self, divisor: Decimal | int) -> Money:
        """Divide and round once.

        Raises:
            ZeroDivisorError: divisor is zero.
        """
        d = to_decimal(divisor)
        if d == 0:
            raise ZeroDivisorError(self.amount)
        with localcontext() as ctx:
            ctx.prec = _WORK_PRECISION
            quotient = self.amount / d
        return Money(quotient, self.precision)

    def percentage(self, percent: Decimal | int | str) -> Money:
        """``percent`` percent of this amount, rounded once."""
        pct = to_decimal(percent)
        with localcontext() as ctx:
            ctx.prec = _WORK_PRECISION
            value = self.amount * pct / 100
        return Money(value, self.precision)

    def __str__(self) -> str:
        return str(self.amount)


def scale_and_round(
    raw: Decimal | int | str | Money, precision: int = DEFAULT_PRECISION
) -> Money:
    """Bring any accepted raw value to scale 2 with HALF_UP rounding."""
    return Money.of(raw, precision)


def add(a: Money, b: Money) -> Money:
    return a + b


def subtract(a: Money, b: Money) -> Money:
    return a - b


def multiply(a: Money, factor: Decimal | int) -> Money:
    return a * factor


def multiply_by_rate_over_period(
    principal: Money,
    annual_rate_percent: Decimal | int | str,
    days: int,
) -> Money:
    """
    Day-count interest: ``principal x (rate / 100) / 365 x days``.

    Preconditions:
        - days >= 0.
        - annual_rate_percent >= 0.

    Postconditions:
        - The whole expression is evaluated at working precision and
          rounded exactly once (HALF_UP, scale 2).

    Raises:
        ValueError: negative days or negative rate.
        MoneyRangeError: result not representable.
    """
    if days < 0:
        raise ValueError(f"days must be non-negative, got {days}")
    rate = to_decimal(annual_rate_percent)
    if rate < 0:
        raise ValueError(f"Interest rate cannot be negative: {rate}")
    with localcontext() as ctx:
        ctx.prec = _WORK_PRECISION
        value = principal.amount * (rate / 100) / DAYS_IN_YEAR * days
    return Money(value, principal.precision)


def monthly_interest(
    balance: Money, annual_rate_percent: Decimal | int | str
) -> Money:
    """Legacy category interest: ``(balance x rate) / 1200``, rounded once."""
    rate = to_decimal(annual_rate_percent)
    if rate < 0:
        raise ValueError(f"Interest rate cannot be negative: {rate}")
    if balance.is_zero or rate == 0:
        return Money.zero(balance.precision)
    with localcontext() as ctx:
        ctx.prec = _WORK_PRECISION
        value = balance.amount * rate / 1200
    return Money(value, balance.precision)
