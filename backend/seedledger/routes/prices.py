from __future__ import annotations
from flask import Blueprint, request

from seedledger import get_db
from seedledger.constants.roles import Role
from seedledger.decorators.auth import require_role, current_actor
from seedledger.exceptions import InvalidInput
from seedledger.services import prices as svc
from seedledger.utils.listing import build_list_payload

prices_bp = Blueprint('prices', __name__)


@prices_bp.get('/<scope>')
@require_role(Role.RADEN)
def list_prices(scope: str):
    model = svc.get_scope_model(scope)
    raw_group = request.args.get('group_id')
    try:
        group_id = int(raw_group) if raw_group else None
    except ValueError:
        raise InvalidInput('group_id must be an integer')
    page = svc.list_prices(get_db(), model, request.args.get('limit'), request.args.get('offset'), group_id=group_id)
    return build_list_payload(page, svc.price_json)


@prices_bp.get('/<scope>/<int:price_id>')
@require_role(Role.RADEN)
def get_price(scope: str, price_id: int):
    model = svc.get_scope_model(scope)
    return svc.price_json(svc.get_price(get_db(), model, price_id))


@prices_bp.post('/<scope>')
@require_role(Role.RADEN)
def create_price(scope: str):
    model = svc.get_scope_model(scope)
    obj = svc.create_price(get_db(), current_actor(), model, request.get_json(silent=True))
    return svc.price_json(obj), 201


@prices_bp.put('/<scope>/<int:price_id>')
@require_role(Role.RADEN)
def update_price(scope: str, price_id: int):
    model = svc.get_scope_model(scope)
    obj = svc.update_price(get_db(), current_actor(), model, price_id, request.get_json(silent=True))
    return svc.price_json(obj)


@prices_bp.delete('/<scope>/<int:price_id>')
@require_role(Role.RADEN)
def delete_price(scope: str, price_id: int):
    model = svc.get_scope_model(scope)
    svc.delete_price(get_db(), current_actor(), model, price_id)
    return {'id': price_id, 'deleted': True}
