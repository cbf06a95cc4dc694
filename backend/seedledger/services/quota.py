"""Weekly seed quota ledger.

One ``WeeklyLimit`` row per (group, Monday-aligned week). Rows are created lazily by
the first sale of the week; unused quota of the previous week is carried into the new
row. Consumption is a single conditional UPDATE so concurrent reservations against the
same row serialize in the database and can never push ``used_limit`` past ``total_limit``.

These functions never commit: callers own the transaction so a reservation and the
sale that caused it are persisted (or rolled back) together.
"""
from __future__ import annotations
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from seedledger.exceptions import NotFound, InvalidInput, InsufficientQuota, QuotaStoreError
from seedledger.models.party import Group
from seedledger.models.weekly_limit import WeeklyLimit
from seedledger.time_utils import as_date, week_window

logger = logging.getLogger(__name__)

ONE_WEEK = timedelta(days=7)


def _find_row(session, group_id: int, week_start: date) -> Optional[WeeklyLimit]:
    return session.execute(
        select(WeeklyLimit).where(WeeklyLimit.group_id == group_id, WeeklyLimit.week_start == week_start)
    ).scalar_one_or_none()


def _load_group(session, group_id: int) -> Group:
    group = session.get(Group, group_id)
    if group is None:
        raise NotFound(f'Group {group_id} not found')
    return group


def _create_row(session, group: Group, week_start: date, carried_over: int) -> Tuple[WeeklyLimit, bool]:
    """Insert the row for (group, week_start) unless a concurrent writer got there first.

    Returns (row, created). A unique-constraint conflict is resolved by reading the
    winner's row; a second failure means the store is inconsistent.
    """
    for attempt in range(2):
        total = group.weekly_seed_limit + carried_over
        row = WeeklyLimit(
            group_id=group.id,
            week_start=week_start,
            week_end=week_start + timedelta(days=6),
            total_limit=total,
            used_limit=0,
            remaining_limit=total,
            carried_over_from_previous=carried_over,
        )
        try:
            with session.begin_nested():
                session.add(row)
        except IntegrityError:
            logger.warning('Weekly limit conflict for group %s week %s (attempt %s)', group.id, week_start, attempt + 1)
            existing = _find_row(session, group.id, week_start)
            if existing is not None:
                return existing, False
            continue
        logger.info('Created weekly limit group=%s week=%s total=%s carried=%s', group.id, week_start, total, carried_over)
        return row, True
    raise QuotaStoreError(group.id, week_start)


def get_or_create_current_limit(session, group_id: int, as_of: Union[date, datetime, None] = None) -> WeeklyLimit:
    """Return the row of the week containing as_of, creating it if needed.

    A new row's carry-over comes from the immediately preceding week's row (floored
    at zero), or 0 when that week has no row.
    """
    week_start, _ = week_window(as_date(as_of))
    row = _find_row(session, group_id, week_start)
    if row is not None:
        return row
    group = _load_group(session, group_id)
    previous = _find_row(session, group_id, week_start - ONE_WEEK)
    carried = max(0, previous.remaining_limit) if previous is not None else 0
    row, _ = _create_row(session, group, week_start, carried)
    return row


def _consume(session, row: WeeklyLimit, quantity: int) -> WeeklyLimit:
    result = session.execute(
        update(WeeklyLimit)
        .where(WeeklyLimit.id == row.id, WeeklyLimit.remaining_limit >= quantity)
        .values(
            used_limit=WeeklyLimit.used_limit + quantity,
            remaining_limit=WeeklyLimit.remaining_limit - quantity,
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(row)
    if result.rowcount == 0:
        logger.warning(
            'Reservation rejected group=%s week=%s requested=%s remaining=%s',
            row.group_id, row.week_start, quantity, row.remaining_limit,
        )
        raise InsufficientQuota(row.group_id, quantity, row.remaining_limit, row.total_limit)
    return row


def _check_quantity(quantity: int):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise InvalidInput('quantity must be a non-negative integer')


def reserve(session, group_id: int, quantity: int, as_of: Union[date, datetime, None] = None) -> WeeklyLimit:
    """Deduct quantity from the group's current-week row or raise InsufficientQuota.

    Never truncates: either the whole quantity is reserved or nothing is.
    """
    _check_quantity(quantity)
    row = get_or_create_current_limit(session, group_id, as_of)
    if quantity == 0:
        return row
    return _consume(session, row, quantity)


def _latest_row(session, group_id: int) -> Optional[WeeklyLimit]:
    return session.execute(
        select(WeeklyLimit)
        .where(WeeklyLimit.group_id == group_id)
        .order_by(WeeklyLimit.week_start.desc())
        .limit(1)
    ).scalar_one_or_none()


def _open_row_for(session, row: WeeklyLimit) -> WeeklyLimit:
    """The group's newest row; equals row unless a later week already carried row's remaining forward."""
    latest = _latest_row(session, row.group_id)
    if latest is None or latest.week_start <= row.week_start:
        return row
    return latest


def reserve_on_row(session, weekly_limit_id: int, quantity: int) -> Optional[WeeklyLimit]:
    """Deduct from the row an existing sale consumed (the sale grows).

    Once a later week exists the old row's remaining already lives on as that week's
    carry-over, so the growth is charged to the group's newest row instead.
    Returns None when the row is gone.
    """
    _check_quantity(quantity)
    row = session.get(WeeklyLimit, weekly_limit_id)
    if row is None:
        return None
    target = _open_row_for(session, row)
    if quantity == 0:
        return target
    return _consume(session, target, quantity)


def release(session, weekly_limit_id: Optional[int], quantity: int) -> Optional[WeeklyLimit]:
    """Give quantity back for a sale that shrunk, moved or was deleted.

    Returned to the row the sale consumed while it is the group's newest week.
    Otherwise the quantity is credited to the newest row as extra carry-over, which is
    what the carried amount would have been had the release happened earlier.
    Returns the credited row, or None when nothing was released.
    """
    _check_quantity(quantity)
    if weekly_limit_id is None or quantity == 0:
        return None
    row = session.get(WeeklyLimit, weekly_limit_id)
    if row is None:
        logger.warning('Release of %s skipped: weekly limit %s no longer exists', quantity, weekly_limit_id)
        return None
    target = _open_row_for(session, row)
    if target is not row:
        session.execute(
            update(WeeklyLimit)
            .where(WeeklyLimit.id == target.id)
            .values(
                total_limit=WeeklyLimit.total_limit + quantity,
                remaining_limit=WeeklyLimit.remaining_limit + quantity,
                carried_over_from_previous=WeeklyLimit.carried_over_from_previous + quantity,
            )
            .execution_options(synchronize_session=False)
        )
        session.refresh(target)
        logger.info(
            'Released %s from closed week %s of group %s into week %s',
            quantity, row.week_start, row.group_id, target.week_start,
        )
        return target
    result = session.execute(
        update(WeeklyLimit)
        .where(WeeklyLimit.id == row.id, WeeklyLimit.used_limit >= quantity)
        .values(
            used_limit=WeeklyLimit.used_limit - quantity,
            remaining_limit=WeeklyLimit.remaining_limit + quantity,
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(row)
    if result.rowcount == 0:
        logger.warning(
            'Release rejected group=%s week=%s requested=%s used=%s',
            row.group_id, row.week_start, quantity, row.used_limit,
        )
        return None
    return row


def rollover(session, now: Union[date, datetime, None] = None) -> List[WeeklyLimit]:
    """Create successor rows for every group whose newest week has fully elapsed.

    Walks one week at a time until the week containing now exists, carrying
    max(0, remaining) forward each step. Groups without any row are skipped.
    Calling it again in the same week creates nothing.
    """
    today = as_date(now)
    created: List[WeeklyLimit] = []
    groups = session.execute(select(Group).order_by(Group.id)).scalars().all()
    for group in groups:
        latest = _latest_row(session, group.id)
        if latest is None:
            continue
        while latest.week_end < today:
            successor, was_created = _create_row(
                session, group, latest.week_start + ONE_WEEK, max(0, latest.remaining_limit)
            )
            if was_created:
                created.append(successor)
            latest = successor
    logger.info('Rollover as of %s created %s weekly limit rows', today, len(created))
    return created


def limit_history(session, group_id: int, size: int = 10) -> List[WeeklyLimit]:
    _load_group(session, group_id)
    return session.execute(
        select(WeeklyLimit)
        .where(WeeklyLimit.group_id == group_id)
        .order_by(WeeklyLimit.week_start.desc())
        .limit(size)
    ).scalars().all()


def weekly_limit_json(row: WeeklyLimit):
    return {
        'id': row.id,
        'group_id': row.group_id,
        'week_start': row.week_start.isoformat(),
        'week_end': row.week_end.isoformat(),
        'total_limit': row.total_limit,
        'used_limit': row.used_limit,
        'remaining_limit': row.remaining_limit,
        'carried_over_from_previous': row.carried_over_from_previous,
    }


__all__ = [
    'get_or_create_current_limit', 'reserve', 'reserve_on_row', 'release',
    'rollover', 'limit_history', 'weekly_limit_json',
]
