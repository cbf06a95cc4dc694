"""Read views and the administrative rollover over the quota ledger.

Unlike ``quota`` these functions close their own transaction, since viewing the
current week lazily creates its row.
"""
from __future__ import annotations
import logging
from datetime import date, datetime
from typing import List, Optional, Union

from sqlalchemy import select

from seedledger.constants.roles import Role
from seedledger.exceptions import InvalidInput
from seedledger.models.party import Group
from seedledger.models.weekly_limit import WeeklyLimit
from seedledger.services import quota
from seedledger.services.audit import add_audit
from seedledger.services.concurrency import run_with_retry
from seedledger.services.policy import Actor, assert_role_at_least
from seedledger.time_utils import parse_iso_date

logger = logging.getLogger(__name__)


def parse_as_of(raw: Optional[str]) -> Optional[date]:
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise InvalidInput(f'Invalid date {raw!r}, expected YYYY-MM-DD')


def _committed(session, func):
    def _unit():
        try:
            rv = func()
            session.commit()
            return rv
        except Exception:
            session.rollback()
            raise
    return run_with_retry(session, _unit)


def current_limit(session, group_id: int, as_of: Union[date, datetime, None] = None) -> WeeklyLimit:
    return _committed(session, lambda: quota.get_or_create_current_limit(session, group_id, as_of))


def current_limits(session, as_of: Union[date, datetime, None] = None) -> List[WeeklyLimit]:
    """Current-week row of every group, ordered by group name."""
    def _work():
        groups = session.execute(select(Group).order_by(Group.name.asc())).scalars().all()
        return [quota.get_or_create_current_limit(session, g.id, as_of) for g in groups]
    return _committed(session, _work)


def history(session, group_id: int, size: int = 10) -> List[WeeklyLimit]:
    return quota.limit_history(session, group_id, size)


def rollover_weekly_limits(session, actor: Actor, now: Union[date, datetime, None] = None) -> List[WeeklyLimit]:
    assert_role_at_least(actor, Role.ULTRA, 'roll over weekly limits')

    def _work():
        rows = quota.rollover(session, now)
        add_audit(session, actor, 'QUOTA.ROLLOVER', 'WeeklyLimit', None, {
            'created': len(rows),
            'groups': sorted({r.group_id for r in rows}),
        })
        return rows

    rows = _committed(session, _work)
    logger.info('Rollover by %s created %s rows', actor.id, len(rows))
    return rows


__all__ = ['parse_as_of', 'current_limit', 'current_limits', 'history', 'rollover_weekly_limits']
