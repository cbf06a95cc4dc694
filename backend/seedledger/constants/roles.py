"""Role tiers and price tables.

Single source of truth for the four role tiers and the per-unit prices derived from them.
Extend cautiously; stored records keep the unit price that was resolved at write time,
so changing a price here only affects future writes.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict


class Role(str, Enum):
    ABU = 'Abu'
    IJO = 'Ijo'
    ULTRA = 'Ultra'
    RADEN = 'Raden'

    @property
    def rank(self) -> int:
        return ROLE_ORDER.index(self)

    def at_least(self, minimum: 'Role') -> bool:
        return self.rank >= Role(minimum).rank


# Lowest privilege first
ROLE_ORDER = [Role.ABU, Role.IJO, Role.ULTRA, Role.RADEN]

ROLE_NAMES = [r.value for r in ROLE_ORDER]

# Role assigned to accounts created without an explicit role
DEFAULT_ROLE = Role.ABU

ITEM_KIND_SEED = 'seed'
ITEM_KIND_LEAF = 'leaf'
ITEM_KINDS = (ITEM_KIND_SEED, ITEM_KIND_LEAF)

# (item kind, role) -> unit price in whole currency units
PRICE_TABLE: Dict[str, Dict[Role, int]] = {
    ITEM_KIND_SEED: {
        Role.ABU: 100,
        Role.IJO: 200,
        Role.ULTRA: 700,
        Role.RADEN: 700,
    },
    ITEM_KIND_LEAF: {
        Role.ABU: 200,
        Role.IJO: 200,
        Role.ULTRA: 200,
        Role.RADEN: 200,
    },
}

DEFAULT_WEEKLY_SEED_LIMIT = 400

__all__ = [
    'Role', 'ROLE_ORDER', 'ROLE_NAMES', 'DEFAULT_ROLE',
    'ITEM_KIND_SEED', 'ITEM_KIND_LEAF', 'ITEM_KINDS',
    'PRICE_TABLE', 'DEFAULT_WEEKLY_SEED_LIMIT',
]
