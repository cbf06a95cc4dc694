"""Role policy: prices and permissions derived from the acting role.

Pure functions over enumerated input; nothing here reads request or session state.
The acting user is always passed in explicitly as an ``Actor``.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from seedledger.constants.roles import Role, PRICE_TABLE, ITEM_KINDS, ITEM_KIND_SEED, ITEM_KIND_LEAF
from seedledger.exceptions import Forbidden, InvalidInput


@dataclass(frozen=True)
class Actor:
    id: str
    role: Role


def parse_role(raw: Any) -> Role:
    if isinstance(raw, Role):
        return raw
    try:
        return Role(raw)
    except ValueError:
        raise InvalidInput(f"Unknown role {raw!r}")


def price_for(item_kind: str, role: Role) -> int:
    if item_kind not in ITEM_KINDS:
        raise InvalidInput(f"Unknown item kind {item_kind!r}")
    return PRICE_TABLE[item_kind][parse_role(role)]


def price_for_seed(role: Role) -> int:
    return price_for(ITEM_KIND_SEED, role)


def price_for_leaf(role: Role) -> int:
    return price_for(ITEM_KIND_LEAF, role)


def can_create(actor_role: Role) -> bool:
    return parse_role(actor_role).at_least(Role.IJO)


def can_edit(actor_role: Role, actor_id: str, owner_id: str) -> bool:
    """Abu never; Ijo only records it created; Ultra and Raden always."""
    role = parse_role(actor_role)
    if role == Role.ABU:
        return False
    if role == Role.IJO:
        return actor_id == owner_id
    return True


def can_delete(actor_role: Role) -> bool:
    # Ownership does not grant delete rights
    return parse_role(actor_role).at_least(Role.ULTRA)


def sees_only_own_records(actor_role: Role) -> bool:
    return parse_role(actor_role) == Role.IJO


def assert_role_at_least(actor: Actor, minimum: Role, action: str = 'perform this action'):
    if not actor.role.at_least(minimum):
        raise Forbidden(f"Role {actor.role.value} cannot {action}; {minimum.value} or higher required")


__all__ = [
    'Actor', 'parse_role', 'price_for', 'price_for_seed', 'price_for_leaf',
    'can_create', 'can_edit', 'can_delete', 'sees_only_own_records', 'assert_role_at_least',
]
