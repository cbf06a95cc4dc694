from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Boolean, ForeignKey, UniqueConstraint, CheckConstraint, DateTime, text
from typing import Optional

from .authz import Base


class GroupPrice(Base):
    """Unit price a specific group pays for one seed or leaf type (external records)."""
    __tablename__ = 'group_prices'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    group_id: Mapped[int] = mapped_column(ForeignKey('groups.id', ondelete='CASCADE'), nullable=False, index=True)
    item_kind: Mapped[str] = mapped_column(String(8), nullable=False)
    item_type_id: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'))
    updated_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))

    __table_args__ = (
        UniqueConstraint('group_id', 'item_kind', 'item_type_id', name='uq_group_price_item'),
        CheckConstraint('price >= 0', name='ck_group_price_non_negative'),
    )


class InternalPrice(Base):
    """Unit price for one seed or leaf type on internal records.

    role NULL applies to every role; a row for the acting role wins over it.
    """
    __tablename__ = 'internal_prices'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_kind: Mapped[str] = mapped_column(String(8), nullable=False)
    item_type_id: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'))
    updated_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))

    __table_args__ = (
        UniqueConstraint('item_kind', 'item_type_id', 'role', name='uq_internal_price_item_role'),
        CheckConstraint('price >= 0', name='ck_internal_price_non_negative'),
    )
