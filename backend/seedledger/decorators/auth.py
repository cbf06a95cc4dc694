from functools import wraps
from flask import abort, g
from flask_jwt_extended import verify_jwt_in_request, get_jwt, get_jwt_identity

from seedledger.constants.roles import Role
from seedledger.services.policy import Actor


def current_actor() -> Actor:
    """Actor of the verified token, built once per request.

    The role comes from the token claim; a role change applies at the next login.
    """
    actor = g.get('actor')
    if actor is None:
        verify_jwt_in_request()
        raw = get_jwt().get('role')
        try:
            role = Role(raw)
        except ValueError:
            abort(401, description='Token carries no valid role')
        actor = Actor(id=str(get_jwt_identity()), role=role)
        g.actor = actor
    return actor


def require_role(minimum: Role = Role.ABU):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            actor = current_actor()
            if not actor.role.at_least(minimum):
                abort(403, description=f'{minimum.value} or higher required')
            return fn(*args, **kwargs)
        return wrapper
    return outer
