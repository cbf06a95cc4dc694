from __future__ import annotations
from typing import Any, Dict, Optional

from seedledger.models.audit import AuditLog


def add_audit(session, actor, action: str, entity: Optional[str] = None, entity_id: Optional[Any] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry within the given DB session.

    Parameters:
      actor: the acting ``Actor`` (or None for system jobs)
      action: short action code e.g. RECORD.CREATE, USER.ROLE.SET, QUOTA.ROLLOVER
      entity: optional entity name (ExternalSale, Group, etc.)
      entity_id: optional primary key
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    log = AuditLog(
        actor_user_id=actor.id if actor is not None else 'system',
        actor_role=actor.role.value if actor is not None else None,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log


def audit_log_json(r: AuditLog):
    return {
        'id': r.id,
        'actor_user_id': r.actor_user_id,
        'actor_role': r.actor_role,
        'action': r.action,
        'entity': r.entity,
        'entity_id': r.entity_id,
        'meta': r.meta,
        'created_at': r.created_at.isoformat() if r.created_at else None,
    }
