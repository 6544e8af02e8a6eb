"""
Common Value Objects

Value objects used across multiple domains:
- PriceRange: Optional inclusive price bounds used by listing filters
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from shared.domain.base import ValueObject


def parse_price(value) -> Optional[Decimal]:
    """
    Parse a user-entered price

    Empty or unparsable input means "no bound" rather than an error,
    the same way an empty price box imposes no constraint.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


@dataclass(frozen=True)
class PriceRange(ValueObject):
    """
    Price range value object

    Both bounds are inclusive when present and unconstrained when absent.
    """
    minimum: Optional[Decimal] = None
    maximum: Optional[Decimal] = None

    @classmethod
    def from_raw(cls, minimum=None, maximum=None) -> 'PriceRange':
        return cls(parse_price(minimum), parse_price(maximum))

    @property
    def is_unbounded(self) -> bool:
        return self.minimum is None and self.maximum is None

    def contains(self, price) -> bool:
        """
        Check if a price is within this range

        A listing without a price only matches an unbounded range.
        """
        if self.is_unbounded:
            return True
        amount = parse_price(price)
        if amount is None:
            return False
        if self.minimum is not None and amount < self.minimum:
            return False
        if self.maximum is not None and amount > self.maximum:
            return False
        return True

    def __str__(self):
        low = self.minimum if self.minimum is not None else '*'
        high = self.maximum if self.maximum is not None else '*'
        return f"{low} - {high}"
