from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column, declared_attr
from sqlalchemy import Integer, String, ForeignKey, DateTime, func
from typing import Optional

from .authz import Base


class _TransactionColumns:
    """Columns shared by the four transaction record tables.

    total_price == quantity * unit_price, both resolved at write time from the acting role.
    """
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @declared_attr
    def created_by_user_id(cls) -> Mapped[str]:
        return mapped_column(String(64), ForeignKey('users.id'), nullable=False, index=True)


class ExternalSale(_TransactionColumns, Base):
    __tablename__ = 'external_sales'
    owner_id: Mapped[int] = mapped_column('group_id', ForeignKey('groups.id'), nullable=False, index=True)
    item_type_id: Mapped[int] = mapped_column('seed_type_id', ForeignKey('seed_types.id'), nullable=False)
    # Weekly limit row this sale consumed; quantity changes are settled against it
    weekly_limit_id: Mapped[Optional[int]] = mapped_column(ForeignKey('weekly_limits.id', ondelete='SET NULL'), index=True)


class ExternalLeafPurchase(_TransactionColumns, Base):
    __tablename__ = 'external_leaf_purchases'
    owner_id: Mapped[int] = mapped_column('group_id', ForeignKey('groups.id'), nullable=False, index=True)
    item_type_id: Mapped[int] = mapped_column('leaf_type_id', ForeignKey('leaf_types.id'), nullable=False)


class InternalSale(_TransactionColumns, Base):
    __tablename__ = 'internal_sales'
    owner_id: Mapped[int] = mapped_column('member_id', ForeignKey('members.id'), nullable=False, index=True)
    item_type_id: Mapped[int] = mapped_column('seed_type_id', ForeignKey('seed_types.id'), nullable=False)


class InternalLeafPurchase(_TransactionColumns, Base):
    __tablename__ = 'internal_leaf_purchases'
    owner_id: Mapped[int] = mapped_column('member_id', ForeignKey('members.id'), nullable=False, index=True)
    item_type_id: Mapped[int] = mapped_column('leaf_type_id', ForeignKey('leaf_types.id'), nullable=False)
