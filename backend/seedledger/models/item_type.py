from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime, text
from typing import Optional

from .authz import Base
from seedledger.constants.roles import ITEM_KIND_SEED, ITEM_KIND_LEAF


class SeedType(Base):
    __tablename__ = 'seed_types'
    ITEM_KIND = ITEM_KIND_SEED
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500))
    updated_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))


class LeafType(Base):
    __tablename__ = 'leaf_types'
    ITEM_KIND = ITEM_KIND_LEAF
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500))
    updated_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))


ITEM_TYPE_MODELS = {
    ITEM_KIND_SEED: SeedType,
    ITEM_KIND_LEAF: LeafType,
}
