from __future__ import annotations
from flask import Blueprint, request, current_app

from seedledger import get_db
from seedledger.decorators.auth import require_role, current_actor
from seedledger.models.party import Group
from seedledger.services import parties as svc
from seedledger.utils.listing import build_list_payload

parties_bp = Blueprint('parties', __name__)


@parties_bp.get('/<party>')
@require_role()
def list_parties(party: str):
    model = svc.get_party_model(party)
    page = svc.list_parties(get_db(), model, request.args.get('limit'), request.args.get('offset'))
    return build_list_payload(page, svc.party_json)


@parties_bp.get('/<party>/<int:party_id>')
@require_role()
def get_party(party: str, party_id: int):
    model = svc.get_party_model(party)
    return svc.party_json(svc.get_party(get_db(), model, party_id))


@parties_bp.post('/<party>')
@require_role()
def create_party(party: str):
    model = svc.get_party_model(party)
    data = dict(request.get_json(silent=True) or {})
    if model is Group:
        data.setdefault('weekly_seed_limit', current_app.config['DEFAULT_WEEKLY_SEED_LIMIT'])
    obj = svc.create_party(get_db(), current_actor(), model, data)
    return svc.party_json(obj), 201


@parties_bp.put('/<party>/<int:party_id>')
@require_role()
def update_party(party: str, party_id: int):
    model = svc.get_party_model(party)
    obj = svc.update_party(get_db(), current_actor(), model, party_id, request.get_json(silent=True))
    return svc.party_json(obj)


@parties_bp.delete('/<party>/<int:party_id>')
@require_role()
def delete_party(party: str, party_id: int):
    model = svc.get_party_model(party)
    svc.delete_party(get_db(), current_actor(), model, party_id)
    return {'id': party_id, 'deleted': True}
