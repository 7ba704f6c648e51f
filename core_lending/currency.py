"""
Currency and Money Module

Decimal-backed money type used by every schedule, payment and fine
calculation. NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP, InvalidOperation, getcontext
from dataclasses import dataclass
from enum import Enum
import re

# Set global decimal context for financial precision
getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 Currency Codes with precision info"""
    INR = ("INR", 2)  # Indian Rupee, 2 decimal places
    USD = ("USD", 2)  # US Dollar, 2 decimal places
    EUR = ("EUR", 2)  # Euro, 2 decimal places
    GBP = ("GBP", 2)  # British Pound, 2 decimal places
    JPY = ("JPY", 0)  # Japanese Yen, 0 decimal places

    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision

    @property
    def quantum(self) -> Decimal:
        """Smallest representable unit, e.g. Decimal('0.01')"""
        return Decimal('0.1') ** self.precision


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.
    Amounts are rounded half-up to the currency's minor unit on creation.
    """
    amount: Decimal
    currency: Currency

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        try:
            rounded = self.amount.quantize(self.currency.quantum, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            raise ValueError(f"{self.currency.code} amount {self.amount} is out of range")
        object.__setattr__(self, 'amount', rounded)

    @classmethod
    def zero(cls, currency: Currency) -> 'Money':
        return cls(Decimal('0'), currency)

    def _check_currency(self, other: 'Money', verb: str) -> None:
        if self.currency != other.currency:
            raise ValueError(f"Cannot {verb} {self.currency.code} and {other.currency.code}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        if not isinstance(multiplier, Decimal):
            multiplier = Decimal(str(multiplier))
        return Money(self.amount * multiplier, self.currency)

    def __truediv__(self, divisor: Decimal) -> 'Money':
        if not isinstance(divisor, Decimal):
            divisor = Decimal(str(divisor))
        return Money(self.amount / divisor, self.currency)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount and self.currency == other.currency

    def __hash__(self) -> int:
        return hash((self.amount, self.currency))

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def split_down(self, parts: int) -> 'Money':
        """Share of this amount for one of `parts`, truncated to the minor unit"""
        share = (self.amount / Decimal(parts)).quantize(self.currency.quantum, rounding=ROUND_DOWN)
        return Money(share, self.currency)

    def percent(self, rate: Decimal) -> 'Money':
        """rate percent of this amount, e.g. percent(Decimal('8')) is 8%"""
        return self * (Decimal(str(rate)) / Decimal('100'))

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < Decimal('0')

    def to_string(self) -> str:
        """Format for display"""
        if self.currency.precision == 0:
            return f"{self.currency.code} {self.amount:,.0f}"
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"


def money_sum(amounts, currency: Currency) -> Money:
    """Sum an iterable of Money, starting from zero in `currency`"""
    total = Money.zero(currency)
    for amount in amounts:
        total = total + amount
    return total


CURRENCY_SYMBOLS = "₹$€£¥"

# Largest amount or rate accepted at the API edge
MAX_AMOUNT = Decimal('1000000000000')

_NUMBER = re.compile(r'[+-]?[\d.,]+')


def decimal_from_string(value) -> Decimal:
    """
    Safely convert a string (or number) to Decimal, handling common formats

    Currency symbols and whitespace are ignored. Any other character that is
    not a digit, separator or leading sign makes the value invalid.

    Args:
        value: String representation of number, or an int/Decimal

    Returns:
        Decimal value

    Raises:
        ValueError: If value cannot be converted to a finite Decimal
    """
    if isinstance(value, bool):
        raise ValueError("Value must be a number or a non-empty string")
    if isinstance(value, (Decimal, int, float)):
        result = value if isinstance(value, Decimal) else Decimal(str(value))
        if not result.is_finite():
            raise ValueError(f"Cannot convert '{value}' to Decimal")
        return result
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    clean_value = re.sub(r'\s', '', value)
    for symbol in CURRENCY_SYMBOLS:
        clean_value = clean_value.replace(symbol, '')
    if not _NUMBER.fullmatch(clean_value):
        raise ValueError(f"Cannot convert '{value}' to Decimal")

    if ',' in clean_value and '.' in clean_value:
        # Both comma and dot - comma is the thousands separator
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value and clean_value.count(',') == 1:
        parts = clean_value.split(',')
        if len(parts[1]) <= 2:
            clean_value = clean_value.replace(',', '.')
        else:
            clean_value = clean_value.replace(',', '')
    else:
        clean_value = clean_value.replace(',', '')

    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")
