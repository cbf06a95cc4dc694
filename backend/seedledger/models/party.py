from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime, text
from typing import Optional

from .authz import Base
from seedledger.constants.roles import DEFAULT_WEEKLY_SEED_LIMIT


class Group(Base):
    """External customer; its seed sales are throttled by a weekly limit."""
    __tablename__ = 'groups'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(256), unique=True, nullable=False, index=True)
    weekly_seed_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_WEEKLY_SEED_LIMIT)
    created_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'))
    updated_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))


class Member(Base):
    """Internal counterpart of Group; no weekly limit applies."""
    __tablename__ = 'members'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(256), unique=True, nullable=False, index=True)
    created_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'))
    updated_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))
