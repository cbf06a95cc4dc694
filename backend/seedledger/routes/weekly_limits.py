from __future__ import annotations
from flask import Blueprint, request

from seedledger import get_db
from seedledger.constants.roles import Role
from seedledger.decorators.auth import require_role, current_actor
from seedledger.services import weekly_limits as svc
from seedledger.services.quota import weekly_limit_json

weekly_limits_bp = Blueprint('weekly_limits', __name__)


@weekly_limits_bp.get('/current')
@require_role()
def current_all():
    as_of = svc.parse_as_of(request.args.get('date'))
    rows = svc.current_limits(get_db(), as_of)
    return {'data': [weekly_limit_json(r) for r in rows]}


@weekly_limits_bp.get('/<int:group_id>/current')
@require_role()
def current_for_group(group_id: int):
    as_of = svc.parse_as_of(request.args.get('date'))
    return weekly_limit_json(svc.current_limit(get_db(), group_id, as_of))


@weekly_limits_bp.get('/<int:group_id>/history')
@require_role()
def history(group_id: int):
    rows = svc.history(get_db(), group_id)
    return {'data': [weekly_limit_json(r) for r in rows]}


@weekly_limits_bp.post('/rollover')
@require_role(Role.ULTRA)
def rollover():
    as_of = svc.parse_as_of(request.args.get('date'))
    rows = svc.rollover_weekly_limits(get_db(), current_actor(), as_of)
    return {'created': len(rows), 'data': [weekly_limit_json(r) for r in rows]}
