from __future__ import annotations
from flask import Blueprint, request, abort, current_app
from flask_jwt_extended import create_access_token

from seedledger import get_db
from seedledger.constants.roles import Role
from seedledger.decorators.auth import require_role, current_actor
from seedledger.services import accounts
from seedledger.services.audit import audit_log_json
from seedledger.utils.listing import build_list_payload

iam_bp = Blueprint('iam', __name__)


@iam_bp.post('/auth/login')
def login():
    data = request.get_json(silent=True) or {}
    user = accounts.authenticate(get_db(), data.get('email'), data.get('password'))
    if user is None:
        abort(401, description='invalid credentials')
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims={'role': user.role})
    current_app.logger.info('Login %s (%s)', user.id, user.role)
    return {'access_token': token}


@iam_bp.get('/auth/me')
@require_role()
def me():
    actor = current_actor()
    user = accounts.get_user(get_db(), actor.id)
    body = accounts.user_json(user)
    # role the current token acts with; differs from stored role until next login
    body['token_role'] = actor.role.value
    return body


# --- User administration (Raden) ---

@iam_bp.get('/users')
@require_role(Role.RADEN)
def list_users():
    page = accounts.list_users(get_db(), current_actor(), request.args.get('limit'), request.args.get('offset'))
    return build_list_payload(page, accounts.user_json)


@iam_bp.get('/users/stats')
@require_role(Role.RADEN)
def user_stats():
    return accounts.user_stats(get_db(), current_actor())


@iam_bp.get('/users/<user_id>')
@require_role(Role.RADEN)
def get_user(user_id: str):
    return accounts.user_json(accounts.get_user(get_db(), user_id))


@iam_bp.post('/users')
@require_role(Role.RADEN)
def create_user():
    user = accounts.create_user(get_db(), current_actor(), request.get_json(silent=True))
    return accounts.user_json(user), 201


@iam_bp.put('/users/<user_id>/role')
@require_role(Role.RADEN)
def set_user_role(user_id: str):
    data = request.get_json(silent=True) or {}
    user = accounts.set_role(get_db(), current_actor(), user_id, data.get('role'))
    return accounts.user_json(user)


@iam_bp.get('/audit/logs')
@require_role(Role.RADEN)
def list_audit_logs():
    page = accounts.list_audit_logs(
        get_db(), current_actor(),
        request.args.get('limit'), request.args.get('offset'), request.args.get('action'),
    )
    return build_list_payload(page, audit_log_json)
