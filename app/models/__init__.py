"""Models package - exports all SQLAlchemy models."""
from app.models.inventory_item import InventoryItem
from app.models.sale import Sale, PaymentStatus
from app.models.sale_line import SaleLine
from app.models.sale_return import SaleReturn
from app.models.partner import Partner, PartnerType
from app.models.investment import Investment, InvestmentType
from app.models.shop_settings import ShopSettings, SETTINGS_FIELDS

__all__ = [
    'InventoryItem',
    'Sale', 'PaymentStatus', 'SaleLine', 'SaleReturn',
    'Partner', 'PartnerType', 'Investment', 'InvestmentType',
    'ShopSettings', 'SETTINGS_FIELDS',
]
