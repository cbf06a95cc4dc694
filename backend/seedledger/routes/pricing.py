from __future__ import annotations
from flask import Blueprint, request

from seedledger.constants.roles import ROLE_ORDER, ITEM_KINDS
from seedledger.decorators.auth import require_role, current_actor
from seedledger.exceptions import InvalidInput, NotFound
from seedledger.services.policy import parse_role, price_for
from seedledger.services.pricing import resolve

pricing_bp = Blueprint('pricing', __name__)


@pricing_bp.get('/table')
@require_role()
def table():
    return {kind: {r.value: price_for(kind, r) for r in ROLE_ORDER} for kind in ITEM_KINDS}


@pricing_bp.get('/quote')
@require_role()
def quote():
    actor = current_actor()
    kind = request.args.get('kind')
    if kind not in ITEM_KINDS:
        raise InvalidInput(f'kind must be one of {list(ITEM_KINDS)}')
    try:
        quantity = int(request.args.get('quantity', ''))
    except ValueError:
        raise InvalidInput('quantity must be an integer')
    price = resolve(kind, actor.role, quantity)
    return {
        'kind': kind,
        'role': actor.role.value,
        'quantity': quantity,
        'unit_price': price.unit_price,
        'total_price': price.total_price,
    }


@pricing_bp.get('/<kind>')
@require_role()
def unit_price(kind: str):
    if kind not in ITEM_KINDS:
        raise NotFound(f'Unknown item kind {kind!r}')
    raw = request.args.get('role')
    role = parse_role(raw) if raw else current_actor().role
    return {'kind': kind, 'role': role.value, 'unit_price': price_for(kind, role)}
