"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    Provides the foundational value types for every billing computation:
    Money (an integer count of minor currency units) and tax rates
    (two-place Decimal percentages).  These replace primitive ints and
    strings wherever monetary data appears in domain logic.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module.

Invariants enforced:
    - Amounts are integers in minor units.  A float never enters Money,
      not even one that happens to be integral.
    - Percentage-to-amount conversion rounds ROUND_HALF_UP exactly once,
      on the value it is given.  Totals are sums of already-rounded parts.
    - Tax rates are within [0, 100] with at most two decimal places.

Failure modes:
    - InvalidAmountError for non-integer, negative (where forbidden), NaN,
      infinite, malformed or over-precise amounts, and for
      amounts beyond the signed 64-bit range.
    - InvalidTaxRateError for rates out of range or over-precise.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from billing_kernel.exceptions import InvalidAmountError, InvalidTaxRateError

_HUNDRED = Decimal(100)
_RATE_QUANTUM = Decimal("0.01")

# Largest magnitude a BIGINT column holds; every stored amount and quantity
# must fit.
MAX_AMOUNT = 2**63 - 1


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount in minor units (paise, cents).

    Contract:
        ``amount`` is a plain ``int``.  All arithmetic stays in integers;
        only ``percent_of`` passes through Decimal, and it returns an
        integer again.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - Ordering and equality are integer comparisons

    Non-goals:
        - Does NOT carry a currency; a deployment bills in one currency
          (see ``billing_config``).
        - Does NOT convert between currencies.
    """

    amount: int

    def __post_init__(self) -> None:
        # bool is an int subclass; True is not a price
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise InvalidAmountError(
                self.amount, "amounts are integer minor units"
            )
        if not -MAX_AMOUNT <= self.amount <= MAX_AMOUNT:
            raise InvalidAmountError(
                self.amount, f"amount exceeds {MAX_AMOUNT} minor units"
            )

    @classmethod
    def zero(cls) -> Money:
        """Create a zero amount."""
        return cls(0)

    @classmethod
    def of(cls, amount: int) -> Money:
        """Create a non-negative amount (prices, catalog values)."""
        return cls(amount).require_non_negative()

    @classmethod
    def sum(cls, amounts: Iterable[Money]) -> Money:
        """Add up an iterable of Money; the empty sum is zero."""
        total = 0
        for money in amounts:
            total += money.amount
        return cls(total)

    @classmethod
    def parse(cls, text: str, major_unit_divisor: int = 100) -> Money:
        """
        Parse a user-entered decimal string in major units.

        ``Money.parse("100.50")`` is 10050 minor units.  The string must be
        finite, non-negative and carry no more precision than the minor
        unit allows; nothing is rounded.

        Raises:
            InvalidAmountError: on malformed, NaN, infinite, negative or
                over-precise input.
        """
        if not isinstance(text, str):
            raise InvalidAmountError(text, "expected a decimal string")
        try:
            value = Decimal(text.strip())
        except InvalidOperation as exc:
            raise InvalidAmountError(text, "not a decimal number") from exc
        if not value.is_finite():
            raise InvalidAmountError(text, "amount must be finite")
        if value < 0:
            raise InvalidAmountError(text, "amount must not be negative")
        minor = value * major_unit_divisor
        if minor != minor.to_integral_value():
            raise InvalidAmountError(
                text, "more precision than the minor unit allows"
            )
        return cls(int(minor))

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    def require_non_negative(self) -> Money:
        """Return self, or raise if the amount is negative."""
        if self.amount < 0:
            raise InvalidAmountError(self.amount, "amount must not be negative")
        return self

    def add(self, other: Money) -> Money:
        return Money(self.amount + other.amount)

    def subtract(self, other: Money) -> Money:
        return Money(self.amount - other.amount)

    def multiply_by_quantity(self, quantity: int) -> Money:
        """Multiply by a non-negative integer quantity."""
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidAmountError(quantity, "quantity must be an integer")
        if quantity < 0:
            raise InvalidAmountError(quantity, "quantity must not be negative")
        return Money(self.amount * quantity)

    def percent_of(self, rate: Decimal | int | str) -> Money:
        """
        ``rate`` percent of this amount, to the nearest minor unit.

        Ties round up (ROUND_HALF_UP): 0.5 minor units becomes 1.
        """
        pct = parse_tax_rate(rate)
        exact = Decimal(self.amount) * pct / _HUNDRED
        return Money(int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP)))

    def format(self, major_unit_divisor: int = 100, symbol: str = "") -> str:
        """Display string such as ``₹100.00``.  Display only."""
        places = len(str(major_unit_divisor)) - 1
        sign = "-" if self.amount < 0 else ""
        major = Decimal(abs(self.amount)) / Decimal(major_unit_divisor)
        return f"{sign}{symbol}{major:.{places}f}"

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.amount <= other.amount

    def __int__(self) -> int:
        return self.amount

    def __str__(self) -> str:
        return str(self.amount)

    def __repr__(self) -> str:
        return f"Money({self.amount})"


def parse_tax_rate(value: Decimal | int | float | str | None) -> Decimal:
    """
    Normalize a tax rate percentage to a two-place Decimal.

    ``None`` means "no tax" and yields ``Decimal("0.00")``.  Floats are
    converted through ``str`` so that ``18.5`` is exactly ``18.50``.

    Raises:
        InvalidTaxRateError: outside [0, 100], non-numeric, or more than
            two decimal places.
    """
    if value is None:
        return Decimal("0.00")
    if isinstance(value, bool):
        raise InvalidTaxRateError(value, "not a number")
    try:
        rate = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InvalidTaxRateError(value, "not a number") from exc
    if not rate.is_finite():
        raise InvalidTaxRateError(value, "rate must be finite")
    if rate < 0 or rate > _HUNDRED:
        raise InvalidTaxRateError(value, "rate must be between 0 and 100")
    quantized = rate.quantize(_RATE_QUANTUM)
    if quantized != rate:
        raise InvalidTaxRateError(value, "at most two decimal places")
    return quantized


def tax_rate_to_basis_points(rate: Decimal) -> int:
    """Storage form of a rate: hundredths of a percent (18.50% -> 1850)."""
    return int(parse_tax_rate(rate) * _HUNDRED)


def tax_rate_from_basis_points(basis_points: int) -> Decimal:
    return (Decimal(basis_points) / _HUNDRED).quantize(_RATE_QUANTUM)
