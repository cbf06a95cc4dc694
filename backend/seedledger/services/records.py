"""Record access layer for the four transaction record kinds.

Every operation takes the acting ``Actor`` explicitly and enforces, in order:
role/ownership permission, input validation, weekly quota (external seed sales only),
price resolution from the actor's role. Each write is one transaction: the quota
deduction, the record row and its audit entry commit together or not at all.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import select, func

from seedledger.constants.roles import ITEM_KIND_SEED, ITEM_KIND_LEAF
from seedledger.exceptions import Forbidden, NotFound, InvalidInput
from seedledger.models.item_type import ITEM_TYPE_MODELS
from seedledger.models.party import Group, Member
from seedledger.models.record import ExternalSale, ExternalLeafPurchase, InternalSale, InternalLeafPurchase
from seedledger.services import quota, prices
from seedledger.services.audit import add_audit
from seedledger.services.concurrency import run_with_retry
from seedledger.services.policy import Actor, can_create, can_edit, can_delete, sees_only_own_records
from seedledger.services.pricing import resolve
from seedledger.utils.listing import Page, paginate
from seedledger.utils.sorting import apply_multi_sort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordKind:
    name: str
    model: type
    owner_model: type
    item_kind: str
    uses_quota: bool = False

    @property
    def entity(self) -> str:
        return self.model.__name__


EXTERNAL_SALE = RecordKind('external-sale', ExternalSale, Group, ITEM_KIND_SEED, uses_quota=True)
EXTERNAL_LEAF = RecordKind('external-leaf', ExternalLeafPurchase, Group, ITEM_KIND_LEAF)
INTERNAL_SALE = RecordKind('internal-sale', InternalSale, Member, ITEM_KIND_SEED)
INTERNAL_LEAF = RecordKind('internal-leaf', InternalLeafPurchase, Member, ITEM_KIND_LEAF)

RECORD_KINDS: Dict[str, RecordKind] = {k.name: k for k in (EXTERNAL_SALE, EXTERNAL_LEAF, INTERNAL_SALE, INTERNAL_LEAF)}


def get_kind(name: str) -> RecordKind:
    kind = RECORD_KINDS.get(name)
    if kind is None:
        raise NotFound(f'Unknown record kind {name!r}')
    return kind


@dataclass
class RecordInput:
    owner_id: int
    item_type_id: int
    quantity: int


def _int_field(data: Dict[str, Any], key: str) -> int:
    val = data.get(key)
    if isinstance(val, bool) or val is None:
        raise InvalidInput(f'{key} must be an integer')
    if isinstance(val, int):
        return val
    if isinstance(val, str) and val.strip().lstrip('-').isdigit():
        return int(val.strip())
    raise InvalidInput(f'{key} must be an integer')


def _parse_input(data: Optional[Dict[str, Any]], existing=None) -> RecordInput:
    """Read owner/item type/quantity; on update, missing fields keep their stored value.

    Price fields in the payload are ignored.
    """
    data = data or {}
    values = {}
    for key in ('owner_id', 'item_type_id', 'quantity'):
        if key in data:
            values[key] = _int_field(data, key)
        elif existing is not None:
            values[key] = getattr(existing, key)
        else:
            raise InvalidInput(f'{key} required')
    if values['quantity'] <= 0:
        raise InvalidInput('quantity must be greater than 0')
    return RecordInput(**values)


def _validate_refs(session, kind: RecordKind, fields: RecordInput):
    if session.get(kind.owner_model, fields.owner_id) is None:
        raise NotFound(f'{kind.owner_model.__name__} {fields.owner_id} not found')
    if session.get(ITEM_TYPE_MODELS[kind.item_kind], fields.item_type_id) is None:
        raise InvalidInput(f'Unknown {kind.item_kind} type {fields.item_type_id}')


def _price(session, kind: RecordKind, actor: Actor, fields: RecordInput):
    """Active override for the owner and item first, else the acting role's tier."""
    override = prices.override_for(
        session, kind.item_kind, fields.item_type_id, actor.role,
        group_id=fields.owner_id if kind.owner_model is Group else None,
    )
    return resolve(kind.item_kind, actor.role, fields.quantity, unit_price=override)


def _visible_stmt(kind: RecordKind, actor: Actor):
    stmt = select(kind.model)
    if sees_only_own_records(actor.role):
        stmt = stmt.where(kind.model.created_by_user_id == actor.id)
    return stmt


def _load(session, kind: RecordKind, record_id: int):
    rec = session.get(kind.model, record_id)
    if rec is None:
        raise NotFound(f'{kind.entity} {record_id} not found')
    return rec


def _snapshot(rec) -> Dict[str, Any]:
    return {
        'owner_id': rec.owner_id,
        'item_type_id': rec.item_type_id,
        'quantity': rec.quantity,
        'unit_price': rec.unit_price,
        'total_price': rec.total_price,
    }


def _diff(before: Dict[str, Any], after: Dict[str, Any]) -> Dict[str, Any]:
    return {
        k: {'before': before[k], 'after': after[k]}
        for k in before
        if before[k] != after.get(k)
    }


def _in_transaction(session, func):
    """Run func and commit; roll back on any error so nothing partial survives."""
    def _unit():
        try:
            rv = func()
            session.commit()
            return rv
        except Exception:
            session.rollback()
            raise
    return run_with_retry(session, _unit)


# --- Queries ---

def list_records(
    session, actor: Actor, kind_name: str, limit=None, offset=None,
    sort: Optional[str] = None, owner_id: Optional[int] = None,
) -> Page:
    """Ijo actors see only records they created; every other role sees all rows.

    owner_id narrows the list to one group or member.
    """
    kind = get_kind(kind_name)
    model = kind.model
    stmt = _visible_stmt(kind, actor)
    if owner_id is not None:
        stmt = stmt.where(model.owner_id == owner_id)
    stmt = apply_multi_sort(
        stmt,
        sort,
        {
            'id': model.id,
            'quantity': model.quantity,
            'total_price': model.total_price,
            'created_at': model.created_at,
            'owner_id': model.owner_id,
        },
        [model.created_at.desc(), model.id.desc()],
    )
    return paginate(session, stmt, limit, offset)


def get_record(session, actor: Actor, kind_name: str, record_id: int):
    kind = get_kind(kind_name)
    rec = _load(session, kind, record_id)
    if sees_only_own_records(actor.role) and rec.created_by_user_id != actor.id:
        raise NotFound(f'{kind.entity} {record_id} not found')
    return rec


def total_quantity(session, actor: Actor, kind_name: str) -> int:
    kind = get_kind(kind_name)
    stmt = select(func.coalesce(func.sum(kind.model.quantity), 0))
    if sees_only_own_records(actor.role):
        stmt = stmt.where(kind.model.created_by_user_id == actor.id)
    return int(session.execute(stmt).scalar_one())


# --- Mutations ---

def create_record(session, actor: Actor, kind_name: str, data: Optional[Dict[str, Any]]):
    kind = get_kind(kind_name)
    if not can_create(actor.role):
        raise Forbidden(f'Role {actor.role.value} cannot create records')
    fields = _parse_input(data)

    def _work():
        _validate_refs(session, kind, fields)
        weekly_limit_id = None
        if kind.uses_quota:
            weekly_limit_id = quota.reserve(session, fields.owner_id, fields.quantity).id
        price = _price(session, kind, actor, fields)
        rec = kind.model(
            owner_id=fields.owner_id,
            item_type_id=fields.item_type_id,
            quantity=fields.quantity,
            unit_price=price.unit_price,
            total_price=price.total_price,
            created_by_user_id=actor.id,
        )
        if kind.uses_quota:
            rec.weekly_limit_id = weekly_limit_id
        session.add(rec)
        session.flush()
        add_audit(session, actor, 'RECORD.CREATE', kind.entity, rec.id, _snapshot(rec))
        return rec

    rec = _in_transaction(session, _work)
    logger.info('%s %s created by %s (%s) qty=%s unit=%s', kind.entity, rec.id, actor.id, actor.role.value, rec.quantity, rec.unit_price)
    return rec


def _settle_quota_on_update(session, rec, fields: RecordInput):
    old_qty = rec.quantity
    if fields.owner_id != rec.owner_id:
        quota.release(session, rec.weekly_limit_id, old_qty)
        rec.weekly_limit_id = quota.reserve(session, fields.owner_id, fields.quantity).id
        return
    delta = fields.quantity - old_qty
    if delta > 0:
        row = quota.reserve_on_row(session, rec.weekly_limit_id, delta) if rec.weekly_limit_id else None
        if row is None:
            # Linked week is gone
            quota.reserve(session, fields.owner_id, delta)
    elif delta < 0:
        quota.release(session, rec.weekly_limit_id, -delta)


def update_record(session, actor: Actor, kind_name: str, record_id: int, data: Optional[Dict[str, Any]]):
    """Edit a record and re-price it with the editor's current role."""
    kind = get_kind(kind_name)
    rec = _load(session, kind, record_id)
    if not can_edit(actor.role, actor.id, rec.created_by_user_id):
        raise Forbidden(f'Role {actor.role.value} cannot edit this record')
    fields = _parse_input(data, existing=rec)

    def _work():
        target = _load(session, kind, record_id)
        before = _snapshot(target)
        _validate_refs(session, kind, fields)
        if kind.uses_quota:
            _settle_quota_on_update(session, target, fields)
        price = _price(session, kind, actor, fields)
        target.owner_id = fields.owner_id
        target.item_type_id = fields.item_type_id
        target.quantity = fields.quantity
        target.unit_price = price.unit_price
        target.total_price = price.total_price
        session.flush()
        add_audit(session, actor, 'RECORD.UPDATE', kind.entity, target.id, {
            'changes': _diff(before, _snapshot(target)),
        })
        return target

    rec = _in_transaction(session, _work)
    logger.info('%s %s updated by %s (%s)', kind.entity, rec.id, actor.id, actor.role.value)
    return rec


def delete_record(session, actor: Actor, kind_name: str, record_id: int):
    kind = get_kind(kind_name)
    if not can_delete(actor.role):
        raise Forbidden(f'Role {actor.role.value} cannot delete records')

    def _work():
        rec = _load(session, kind, record_id)
        if kind.uses_quota:
            quota.release(session, rec.weekly_limit_id, rec.quantity)
        add_audit(session, actor, 'RECORD.DELETE', kind.entity, rec.id, _snapshot(rec))
        session.delete(rec)

    _in_transaction(session, _work)
    logger.info('%s %s deleted by %s (%s)', kind.entity, record_id, actor.id, actor.role.value)


def _iso(value):
    return value.isoformat() if value is not None and hasattr(value, 'isoformat') else value


def record_json(kind_name: str, rec):
    kind = get_kind(kind_name)
    body = {
        'id': rec.id,
        'kind': kind.name,
        'owner_id': rec.owner_id,
        'item_type_id': rec.item_type_id,
        'quantity': rec.quantity,
        'unit_price': rec.unit_price,
        'total_price': rec.total_price,
        'created_by_user_id': rec.created_by_user_id,
        'created_at': _iso(rec.created_at),
        'updated_at': _iso(rec.updated_at),
    }
    if kind.uses_quota:
        body['weekly_limit_id'] = rec.weekly_limit_id
    return body


__all__ = [
    'RecordKind', 'RECORD_KINDS', 'get_kind', 'list_records', 'get_record', 'total_quantity',
    'create_record', 'update_record', 'delete_record', 'record_json',
]
