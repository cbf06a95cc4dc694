from __future__ import annotations
from flask import Blueprint, request, current_app

from seedledger import get_db
from seedledger.decorators.auth import require_role, current_actor
from seedledger.exceptions import InvalidInput
from seedledger.services import records as svc
from seedledger.utils.listing import build_list_payload

records_bp = Blueprint('records', __name__)


def _owner_filter():
    raw = request.args.get('owner_id')
    if raw is None or raw == '':
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidInput('owner_id must be an integer')


@records_bp.get('/<kind>')
@require_role()
def list_records(kind: str):
    page = svc.list_records(
        get_db(), current_actor(), kind,
        request.args.get('limit'), request.args.get('offset'), request.args.get('sort'),
        owner_id=_owner_filter(),
    )
    return build_list_payload(page, lambda r: svc.record_json(kind, r))


@records_bp.get('/<kind>/total')
@require_role()
def total(kind: str):
    return {'kind': kind, 'total_quantity': svc.total_quantity(get_db(), current_actor(), kind)}


@records_bp.get('/<kind>/<int:record_id>')
@require_role()
def get_record(kind: str, record_id: int):
    rec = svc.get_record(get_db(), current_actor(), kind, record_id)
    return svc.record_json(kind, rec)


@records_bp.post('/<kind>')
@require_role()
def create_record(kind: str):
    actor = current_actor()
    rec = svc.create_record(get_db(), actor, kind, request.get_json(silent=True))
    current_app.logger.info('POST /records/%s -> %s by %s', kind, rec.id, actor.id)
    return svc.record_json(kind, rec), 201


@records_bp.put('/<kind>/<int:record_id>')
@require_role()
def update_record(kind: str, record_id: int):
    rec = svc.update_record(get_db(), current_actor(), kind, record_id, request.get_json(silent=True))
    return svc.record_json(kind, rec)


@records_bp.delete('/<kind>/<int:record_id>')
@require_role()
def delete_record(kind: str, record_id: int):
    svc.delete_record(get_db(), current_actor(), kind, record_id)
    return {'id': record_id, 'deleted': True}
