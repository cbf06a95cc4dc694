from .authz import Base, User
from .party import Group, Member
from .item_type import SeedType, LeafType, ITEM_TYPE_MODELS
from .weekly_limit import WeeklyLimit
from .record import ExternalSale, ExternalLeafPurchase, InternalSale, InternalLeafPurchase
from .audit import AuditLog
from .price import GroupPrice, InternalPrice

__all__ = [
    'Base', 'User', 'Group', 'Member', 'SeedType', 'LeafType', 'ITEM_TYPE_MODELS',
    'WeeklyLimit', 'ExternalSale', 'ExternalLeafPurchase', 'InternalSale',
    'InternalLeafPurchase', 'AuditLog', 'GroupPrice', 'InternalPrice',
]
