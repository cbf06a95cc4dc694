from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from seedledger.constants.roles import Role
from seedledger.exceptions import InvalidInput
from seedledger.services.policy import price_for


@dataclass(frozen=True)
class ResolvedPrice:
    unit_price: int
    total_price: int


def resolve(item_kind: str, role: Role, quantity: int, unit_price: Optional[int] = None) -> ResolvedPrice:
    """Unit price from the role's tier unless an override is given, total = unit * quantity.

    Rejects negative or non-integer quantities before anything is persisted.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInput('quantity must be an integer')
    if quantity < 0:
        raise InvalidInput('quantity cannot be negative')
    if unit_price is None:
        unit_price = price_for(item_kind, role)
    return ResolvedPrice(unit_price=unit_price, total_price=unit_price * quantity)


__all__ = ['ResolvedPrice', 'resolve']
