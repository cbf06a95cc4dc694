from __future__ import annotations
from flask import Blueprint, request

from seedledger import get_db
from seedledger.decorators.auth import require_role, current_actor
from seedledger.services import item_types as svc
from seedledger.utils.listing import build_list_payload

item_types_bp = Blueprint('item_types', __name__)


@item_types_bp.get('/<kind>')
@require_role()
def list_types(kind: str):
    model = svc.get_item_type_model(kind)
    page = svc.list_item_types(get_db(), model, request.args.get('limit'), request.args.get('offset'))
    return build_list_payload(page, svc.item_type_json)


@item_types_bp.get('/<kind>/<int:type_id>')
@require_role()
def get_type(kind: str, type_id: int):
    model = svc.get_item_type_model(kind)
    return svc.item_type_json(svc.get_item_type(get_db(), model, type_id))


@item_types_bp.post('/<kind>')
@require_role()
def create_type(kind: str):
    model = svc.get_item_type_model(kind)
    obj = svc.create_item_type(get_db(), current_actor(), model, request.get_json(silent=True))
    return svc.item_type_json(obj), 201


@item_types_bp.put('/<kind>/<int:type_id>')
@require_role()
def update_type(kind: str, type_id: int):
    model = svc.get_item_type_model(kind)
    obj = svc.update_item_type(get_db(), current_actor(), model, type_id, request.get_json(silent=True))
    return svc.item_type_json(obj)


@item_types_bp.delete('/<kind>/<int:type_id>')
@require_role()
def delete_type(kind: str, type_id: int):
    model = svc.get_item_type_model(kind)
    svc.delete_item_type(get_db(), current_actor(), model, type_id)
    return {'id': type_id, 'deleted': True}
