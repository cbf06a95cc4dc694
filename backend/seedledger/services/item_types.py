from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from seedledger.constants.roles import Role, ITEM_KIND_SEED
from seedledger.exceptions import Conflict, NotFound, InvalidInput
from seedledger.models.item_type import ITEM_TYPE_MODELS
from seedledger.models.record import ExternalSale, ExternalLeafPurchase, InternalSale, InternalLeafPurchase
from seedledger.services.audit import add_audit
from seedledger.services.prices import delete_prices_for_item
from seedledger.services.policy import Actor, assert_role_at_least
from seedledger.utils.listing import Page, paginate

logger = logging.getLogger(__name__)


def get_item_type_model(kind: str):
    model = ITEM_TYPE_MODELS.get(kind)
    if model is None:
        raise NotFound(f'Unknown item kind {kind!r}')
    return model


def _referencing(model):
    if model.ITEM_KIND == ITEM_KIND_SEED:
        return (ExternalSale, InternalSale)
    return (ExternalLeafPurchase, InternalLeafPurchase)


def _clean(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if 'name' in data or not partial:
        name = data.get('name')
        if not isinstance(name, str) or not name.strip():
            raise InvalidInput('name required')
        if len(name.strip()) > 100:
            raise InvalidInput('name too long (max 100)')
        out['name'] = name.strip()
    if 'description' in data:
        desc = data.get('description')
        if desc is not None and (not isinstance(desc, str) or len(desc) > 500):
            raise InvalidInput('description must be a string of at most 500 characters')
        out['description'] = desc
    return out


def _assert_name_free(session, model, name: str, exclude_id: Optional[int] = None):
    stmt = select(model.id).where(model.name == name)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    if session.execute(stmt).first() is not None:
        raise Conflict(f'{model.__name__} {name!r} already exists', {'name': name})


def _commit(session, model, name):
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict(f'{model.__name__} {name!r} already exists', {'name': name})


def list_item_types(session, model, limit=None, offset=None) -> Page:
    return paginate(session, select(model).order_by(model.name.asc(), model.id.asc()), limit, offset)


def get_item_type(session, model, type_id: int):
    obj = session.get(model, type_id)
    if obj is None:
        raise NotFound(f'{model.__name__} {type_id} not found')
    return obj


def create_item_type(session, actor: Actor, model, data: Optional[Dict[str, Any]]):
    assert_role_at_least(actor, Role.IJO, f'create {model.ITEM_KIND} types')
    fields = _clean(data or {})
    _assert_name_free(session, model, fields['name'])
    obj = model(**fields)
    session.add(obj)
    session.flush()
    add_audit(session, actor, f'{model.ITEM_KIND.upper()}_TYPE.CREATE', model.__name__, obj.id, {'name': obj.name})
    _commit(session, model, obj.name)
    logger.info('%s %s created by %s', model.__name__, obj.id, actor.id)
    return obj


def update_item_type(session, actor: Actor, model, type_id: int, data: Optional[Dict[str, Any]]):
    assert_role_at_least(actor, Role.ULTRA, f'update {model.ITEM_KIND} types')
    obj = get_item_type(session, model, type_id)
    fields = _clean(data or {}, partial=True)
    if 'name' in fields:
        _assert_name_free(session, model, fields['name'], exclude_id=obj.id)
    changes = {}
    for key, val in fields.items():
        if getattr(obj, key) != val:
            changes[key] = {'before': getattr(obj, key), 'after': val}
            setattr(obj, key, val)
    add_audit(session, actor, f'{model.ITEM_KIND.upper()}_TYPE.UPDATE', model.__name__, obj.id, {'changes': changes})
    _commit(session, model, obj.name)
    return obj


def delete_item_type(session, actor: Actor, model, type_id: int):
    assert_role_at_least(actor, Role.ULTRA, f'delete {model.ITEM_KIND} types')
    obj = get_item_type(session, model, type_id)
    refs = sum(
        session.execute(select(func.count()).select_from(rec).where(rec.item_type_id == obj.id)).scalar_one()
        for rec in _referencing(model)
    )
    if refs:
        raise Conflict(f'{model.__name__} {type_id} is referenced by {refs} records', {'references': refs})
    delete_prices_for_item(session, model.ITEM_KIND, obj.id)
    add_audit(session, actor, f'{model.ITEM_KIND.upper()}_TYPE.DELETE', model.__name__, obj.id, {'name': obj.name})
    session.delete(obj)
    session.commit()


def item_type_json(obj):
    return {'id': obj.id, 'kind': obj.ITEM_KIND, 'name': obj.name, 'description': obj.description}


__all__ = [
    'get_item_type_model', 'list_item_types', 'get_item_type', 'create_item_type',
    'update_item_type', 'delete_item_type', 'item_type_json',
]
