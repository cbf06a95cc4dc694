from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError

from seedledger.constants.roles import Role, DEFAULT_WEEKLY_SEED_LIMIT
from seedledger.exceptions import Conflict, NotFound, InvalidInput
from seedledger.models.party import Group, Member
from seedledger.models.record import ExternalSale, ExternalLeafPurchase, InternalSale, InternalLeafPurchase
from seedledger.models.weekly_limit import WeeklyLimit
from seedledger.services.audit import add_audit
from seedledger.services.prices import delete_prices_for_group
from seedledger.services.policy import Actor, assert_role_at_least
from seedledger.utils.listing import Page, paginate

logger = logging.getLogger(__name__)

PARTY_MODELS = {'groups': Group, 'members': Member}

# minimum role per (party, action)
_MIN_ROLE = {
    (Group, 'create'): Role.ULTRA,
    (Group, 'update'): Role.ULTRA,
    (Group, 'delete'): Role.ULTRA,
    (Member, 'create'): Role.IJO,
    (Member, 'update'): Role.ULTRA,
    (Member, 'delete'): Role.ULTRA,
}

_REFERENCING_RECORDS = {
    Group: (ExternalSale, ExternalLeafPurchase),
    Member: (InternalSale, InternalLeafPurchase),
}


def get_party_model(name: str):
    model = PARTY_MODELS.get(name)
    if model is None:
        raise NotFound(f'Unknown party type {name!r}')
    return model


def _clean_name(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInput('name required')
    name = raw.strip()
    if len(name) > 256:
        raise InvalidInput('name too long (max 256)')
    return name


def _clean_limit(raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
        raise InvalidInput('weekly_seed_limit must be a positive integer')
    return raw


def _assert_name_free(session, model, name: str, exclude_id: Optional[int] = None):
    stmt = select(model.id).where(model.name == name)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    if session.execute(stmt).first() is not None:
        raise Conflict(f'{model.__name__} name {name!r} already exists', {'name': name})


def _commit(session, model, name):
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict(f'{model.__name__} name {name!r} already exists', {'name': name})


def list_parties(session, model, limit=None, offset=None) -> Page:
    return paginate(session, select(model).order_by(model.name.asc(), model.id.asc()), limit, offset)


def get_party(session, model, party_id: int):
    obj = session.get(model, party_id)
    if obj is None:
        raise NotFound(f'{model.__name__} {party_id} not found')
    return obj


def create_party(session, actor: Actor, model, data: Optional[Dict[str, Any]]):
    assert_role_at_least(actor, _MIN_ROLE[(model, 'create')], f'create {model.__name__.lower()}s')
    data = data or {}
    name = _clean_name(data.get('name'))
    _assert_name_free(session, model, name)
    obj = model(name=name)
    if model is Group:
        obj.weekly_seed_limit = _clean_limit(data.get('weekly_seed_limit', DEFAULT_WEEKLY_SEED_LIMIT))
    session.add(obj)
    session.flush()
    add_audit(session, actor, f'{model.__name__.upper()}.CREATE', model.__name__, obj.id, party_json(obj))
    _commit(session, model, name)
    logger.info('%s %s created by %s', model.__name__, obj.id, actor.id)
    return obj


def update_party(session, actor: Actor, model, party_id: int, data: Optional[Dict[str, Any]]):
    """Rename, or change a group's base weekly limit.

    A new base limit applies to weeks whose row is created afterwards.
    """
    assert_role_at_least(actor, _MIN_ROLE[(model, 'update')], f'update {model.__name__.lower()}s')
    obj = get_party(session, model, party_id)
    data = data or {}
    before = party_json(obj)
    name = _clean_name(data.get('name')) if 'name' in data else obj.name
    limit = None
    if model is Group and 'weekly_seed_limit' in data:
        limit = _clean_limit(data.get('weekly_seed_limit'))
    _assert_name_free(session, model, name, exclude_id=obj.id)
    obj.name = name
    if limit is not None:
        obj.weekly_seed_limit = limit
    after = party_json(obj)
    add_audit(session, actor, f'{model.__name__.upper()}.UPDATE', model.__name__, obj.id, {
        'changes': {k: {'before': before[k], 'after': after[k]} for k in before if before[k] != after[k]},
    })
    _commit(session, model, obj.name)
    return obj


def delete_party(session, actor: Actor, model, party_id: int):
    assert_role_at_least(actor, _MIN_ROLE[(model, 'delete')], f'delete {model.__name__.lower()}s')
    obj = get_party(session, model, party_id)
    refs = sum(
        session.execute(select(func.count()).select_from(rec).where(rec.owner_id == obj.id)).scalar_one()
        for rec in _REFERENCING_RECORDS[model]
    )
    if refs:
        raise Conflict(f'{model.__name__} {party_id} is referenced by {refs} records', {'references': refs})
    if model is Group:
        session.execute(delete(WeeklyLimit).where(WeeklyLimit.group_id == obj.id))
        delete_prices_for_group(session, obj.id)
    add_audit(session, actor, f'{model.__name__.upper()}.DELETE', model.__name__, obj.id, {'name': obj.name})
    session.delete(obj)
    session.commit()
    logger.info('%s %s deleted by %s', model.__name__, party_id, actor.id)


def party_json(obj):
    body = {'id': obj.id, 'name': obj.name}
    if isinstance(obj, Group):
        body['weekly_seed_limit'] = obj.weekly_seed_limit
    return body


__all__ = [
    'PARTY_MODELS', 'get_party_model', 'list_parties', 'get_party', 'create_party',
    'update_party', 'delete_party', 'party_json',
]
