"""User accounts: authentication lookup, Raden-only administration and role changes."""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from seedledger.constants.roles import Role, ROLE_ORDER, DEFAULT_ROLE
from seedledger.exceptions import Conflict, Forbidden, NotFound, InvalidInput
from seedledger.models.audit import AuditLog
from seedledger.models.authz import User
from seedledger.services.audit import add_audit
from seedledger.services.policy import Actor, assert_role_at_least, parse_role
from seedledger.utils.listing import Page, paginate

logger = logging.getLogger(__name__)


def authenticate(session, email: Optional[str], password: Optional[str]) -> Optional[User]:
    """Return the active user matching the credentials, or None."""
    if not email or not password:
        raise InvalidInput('email & password required')
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None or not user.is_active or not user.verify_password(password):
        logger.warning('Failed login for %s', email)
        return None
    return user


def actor_for(user: User) -> Actor:
    return Actor(id=user.id, role=user.role_enum)


def get_user(session, user_id: str) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFound(f'User {user_id} not found')
    return user


def list_users(session, actor: Actor, limit=None, offset=None) -> Page:
    assert_role_at_least(actor, Role.RADEN, 'list users')
    return paginate(session, select(User).order_by(User.email.asc()), limit, offset)


def create_user(session, actor: Actor, data: Optional[Dict[str, Any]]) -> User:
    assert_role_at_least(actor, Role.RADEN, 'create users')
    data = data or {}
    email = (data.get('email') or '').strip()
    password = data.get('password')
    if not email or not password:
        raise InvalidInput('email & password required')
    role = parse_role(data.get('role') or DEFAULT_ROLE.value)
    if session.execute(select(User.id).where(User.email == email)).first() is not None:
        raise Conflict(f'User {email} already exists', {'email': email})
    user = User(name=(data.get('name') or email.split('@')[0]), email=email, role=role.value, password_hash='')
    user.set_password(password)
    session.add(user)
    session.flush()
    add_audit(session, actor, 'USER.CREATE', 'User', user.id, {'email': email, 'role': role.value})
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict(f'User {email} already exists', {'email': email})
    logger.info('User %s created with role %s by %s', user.id, role.value, actor.id)
    return user


def set_role(session, actor: Actor, user_id: str, raw_role: Any) -> User:
    """Raden changes another user's role; changing one's own role is refused."""
    assert_role_at_least(actor, Role.RADEN, 'change roles')
    role = parse_role(raw_role)
    if user_id == actor.id:
        raise Forbidden('Cannot change your own role')
    user = get_user(session, user_id)
    previous = user.role
    user.role = role.value
    add_audit(session, actor, 'USER.ROLE.SET', 'User', user.id, {'before': previous, 'after': role.value})
    session.commit()
    logger.info('User %s role %s -> %s by %s', user.id, previous, role.value, actor.id)
    return user


def user_stats(session, actor: Actor) -> Dict[str, Any]:
    assert_role_at_least(actor, Role.RADEN, 'view user statistics')
    counts = dict(session.execute(select(User.role, func.count()).group_by(User.role)).all())
    by_role = {r.value: int(counts.get(r.value, 0)) for r in ROLE_ORDER}
    return {'total': sum(by_role.values()), 'by_role': by_role}


def list_audit_logs(session, actor: Actor, limit=None, offset=None, action: Optional[str] = None) -> Page:
    assert_role_at_least(actor, Role.RADEN, 'read the audit log')
    stmt = select(AuditLog)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    return paginate(session, stmt.order_by(AuditLog.id.desc()), limit, offset)


def user_json(user: User):
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'is_active': user.is_active,
    }


__all__ = [
    'authenticate', 'actor_for', 'get_user', 'list_users', 'create_user', 'set_role',
    'user_stats', 'list_audit_logs', 'user_json',
]
