"""Raden-managed unit price overrides.

Two tables sit in front of the static role price table:

* group prices: (group, item kind, item type) -> price, used by external records
* internal prices: (item kind, item type, role or every role) -> price, used by internal records

Only active rows are consulted. Records keep the unit price resolved at write time, so
editing an override only affects later writes.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError

from seedledger.constants.roles import Role, ITEM_KINDS
from seedledger.exceptions import Conflict, NotFound, InvalidInput
from seedledger.models.item_type import ITEM_TYPE_MODELS
from seedledger.models.party import Group
from seedledger.models.price import GroupPrice, InternalPrice
from seedledger.services.audit import add_audit
from seedledger.services.policy import Actor, assert_role_at_least, parse_role
from seedledger.utils.listing import Page, paginate

logger = logging.getLogger(__name__)

SCOPES = {'group': GroupPrice, 'internal': InternalPrice}

_ACTION = {GroupPrice: 'GROUP_PRICE', InternalPrice: 'INTERNAL_PRICE'}


def get_scope_model(scope: str):
    model = SCOPES.get(scope)
    if model is None:
        raise NotFound(f'Unknown price scope {scope!r}')
    return model


def _int(data: Dict[str, Any], key: str, minimum: int = 0) -> int:
    val = data.get(key)
    if isinstance(val, bool) or not isinstance(val, int) or val < minimum:
        raise InvalidInput(f'{key} must be an integer >= {minimum}')
    return val


def _clean_active(data: Dict[str, Any]) -> bool:
    val = data.get('is_active', True)
    if not isinstance(val, bool):
        raise InvalidInput('is_active must be a boolean')
    return val


def _clean_target(session, data: Dict[str, Any]):
    item_kind = data.get('item_kind')
    if item_kind not in ITEM_KINDS:
        raise InvalidInput(f'item_kind must be one of {list(ITEM_KINDS)}')
    item_type_id = _int(data, 'item_type_id', minimum=1)
    if session.get(ITEM_TYPE_MODELS[item_kind], item_type_id) is None:
        raise InvalidInput(f'Unknown {item_kind} type {item_type_id}')
    return item_kind, item_type_id


def _duplicate_stmt(model, fields: Dict[str, Any]):
    stmt = select(model.id).where(
        model.item_kind == fields['item_kind'],
        model.item_type_id == fields['item_type_id'],
    )
    if model is GroupPrice:
        return stmt.where(GroupPrice.group_id == fields['group_id'])
    # NULL role rows are distinct to the unique constraint, so compare explicitly
    if fields['role'] is None:
        return stmt.where(InternalPrice.role.is_(None))
    return stmt.where(InternalPrice.role == fields['role'])


def _commit(session, fields):
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict('Price for this item already exists', {k: v for k, v in fields.items() if k != 'price'})


def list_prices(session, model, limit=None, offset=None, group_id: Optional[int] = None) -> Page:
    stmt = select(model)
    if group_id is not None and model is GroupPrice:
        stmt = stmt.where(GroupPrice.group_id == group_id)
    return paginate(session, stmt.order_by(model.created_at.desc(), model.id.desc()), limit, offset)


def get_price(session, model, price_id: int):
    obj = session.get(model, price_id)
    if obj is None:
        raise NotFound(f'{model.__name__} {price_id} not found')
    return obj


def create_price(session, actor: Actor, model, data: Optional[Dict[str, Any]]):
    assert_role_at_least(actor, Role.RADEN, 'manage prices')
    data = data or {}
    item_kind, item_type_id = _clean_target(session, data)
    fields: Dict[str, Any] = {
        'item_kind': item_kind,
        'item_type_id': item_type_id,
        'price': _int(data, 'price'),
        'is_active': _clean_active(data),
    }
    if model is GroupPrice:
        group_id = _int(data, 'group_id', minimum=1)
        if session.get(Group, group_id) is None:
            raise NotFound(f'Group {group_id} not found')
        fields['group_id'] = group_id
    else:
        raw_role = data.get('role')
        fields['role'] = parse_role(raw_role).value if raw_role is not None else None
    if session.execute(_duplicate_stmt(model, fields)).first() is not None:
        raise Conflict('Price for this item already exists', {k: v for k, v in fields.items() if k != 'price'})
    obj = model(**fields)
    session.add(obj)
    session.flush()
    add_audit(session, actor, f'{_ACTION[model]}.CREATE', model.__name__, obj.id, price_json(obj))
    _commit(session, fields)
    logger.info('%s %s created by %s price=%s', model.__name__, obj.id, actor.id, obj.price)
    return obj


def update_price(session, actor: Actor, model, price_id: int, data: Optional[Dict[str, Any]]):
    """Change the price and/or active flag; the priced item itself is fixed."""
    assert_role_at_least(actor, Role.RADEN, 'manage prices')
    obj = get_price(session, model, price_id)
    data = data or {}
    fields: Dict[str, Any] = {}
    if 'price' in data:
        fields['price'] = _int(data, 'price')
    if 'is_active' in data:
        fields['is_active'] = _clean_active(data)
    if not fields:
        raise InvalidInput('price or is_active required')
    changes = {}
    for key, val in fields.items():
        if getattr(obj, key) != val:
            changes[key] = {'before': getattr(obj, key), 'after': val}
            setattr(obj, key, val)
    add_audit(session, actor, f'{_ACTION[model]}.UPDATE', model.__name__, obj.id, {'changes': changes})
    session.commit()
    return obj


def delete_price(session, actor: Actor, model, price_id: int):
    assert_role_at_least(actor, Role.RADEN, 'manage prices')
    obj = get_price(session, model, price_id)
    add_audit(session, actor, f'{_ACTION[model]}.DELETE', model.__name__, obj.id, price_json(obj))
    session.delete(obj)
    session.commit()
    logger.info('%s %s deleted by %s', model.__name__, price_id, actor.id)


def delete_prices_for_item(session, item_kind: str, item_type_id: int):
    """Drop overrides of an item type being deleted; caller commits."""
    for model in SCOPES.values():
        session.execute(delete(model).where(model.item_kind == item_kind, model.item_type_id == item_type_id))


def delete_prices_for_group(session, group_id: int):
    """Drop a group's overrides before the group is deleted; caller commits."""
    session.execute(delete(GroupPrice).where(GroupPrice.group_id == group_id))


def override_for(session, item_kind: str, item_type_id: int, role: Role, group_id: Optional[int] = None) -> Optional[int]:
    """Active override unit price, or None when the role price table applies.

    External records (group_id given) look at group prices only. Internal records use
    the acting role's row first, then the every-role row.
    """
    if group_id is not None:
        return session.execute(
            select(GroupPrice.price).where(
                GroupPrice.group_id == group_id,
                GroupPrice.item_kind == item_kind,
                GroupPrice.item_type_id == item_type_id,
                GroupPrice.is_active.is_(True),
            )
        ).scalar_one_or_none()
    role_name = parse_role(role).value
    rows = session.execute(
        select(InternalPrice.role, InternalPrice.price).where(
            InternalPrice.item_kind == item_kind,
            InternalPrice.item_type_id == item_type_id,
            InternalPrice.is_active.is_(True),
            (InternalPrice.role == role_name) | InternalPrice.role.is_(None),
        )
    ).all()
    by_role = {r: p for r, p in rows}
    if role_name in by_role:
        return by_role[role_name]
    return by_role.get(None)


def price_json(obj):
    body = {
        'id': obj.id,
        'item_kind': obj.item_kind,
        'item_type_id': obj.item_type_id,
        'price': obj.price,
        'is_active': obj.is_active,
    }
    if isinstance(obj, GroupPrice):
        body['group_id'] = obj.group_id
    else:
        body['role'] = obj.role
    return body


__all__ = [
    'SCOPES', 'get_scope_model', 'list_prices', 'get_price', 'create_price', 'update_price',
    'delete_price', 'delete_prices_for_item', 'delete_prices_for_group', 'override_for', 'price_json',
]
