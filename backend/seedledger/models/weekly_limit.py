from __future__ import annotations
from datetime import date
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, Date, ForeignKey, UniqueConstraint, CheckConstraint, DateTime, text
from typing import Optional

from .authz import Base


class WeeklyLimit(Base):
    """Seed quota of one group for one Monday-aligned week.

    remaining_limit == total_limit - used_limit
    total_limit == base limit + carried_over_from_previous
    """
    __tablename__ = 'weekly_limits'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    group_id: Mapped[int] = mapped_column(ForeignKey('groups.id', ondelete='CASCADE'), nullable=False, index=True)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    week_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    used_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    remaining_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    carried_over_from_previous: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'))

    __table_args__ = (
        UniqueConstraint('group_id', 'week_start', name='uq_weekly_limit_group_week'),
        CheckConstraint('used_limit >= 0', name='ck_weekly_limit_used_non_negative'),
        CheckConstraint('remaining_limit >= 0', name='ck_weekly_limit_remaining_non_negative'),
    )
