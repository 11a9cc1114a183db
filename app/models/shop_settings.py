"""Shop settings model (single row)."""
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime
from sqlalchemy.sql import func
from app.database import Base
from app.utils.formatters import money_float


DEFAULT_WARRANTY_TERMS = 'Standard warranty terms apply. Items must be returned in original condition.'
DEFAULT_RECEIPT_FOOTER = 'Thank you for your business!'

# JSON key (as used by the front end) -> column attribute
SETTINGS_FIELDS = {
    'shopName': 'shop_name',
    'shopPhone': 'shop_phone',
    'shopEmail': 'shop_email',
    'shopAddress': 'shop_address',
    'shopCity': 'shop_city',
    'shopState': 'shop_state',
    'shopZipCode': 'shop_zip_code',
    'shopLogoUrl': 'shop_logo_url',
    'taxRate': 'tax_rate',
    'currency': 'currency',
    'warrantyPeriod': 'warranty_period',
    'warrantyTerms': 'warranty_terms',
    'receiptFooter': 'receipt_footer',
    'businessRegistration': 'business_registration',
    'taxId': 'tax_id',
}


class ShopSettings(Base):
    """Shop information printed on receipts and invoices."""

    __tablename__ = 'settings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    shop_name = Column(String(255), nullable=False, default='My POS Shop')
    shop_phone = Column(String(50), nullable=False, default='')
    shop_email = Column(String(255), nullable=False, default='')
    shop_address = Column(Text, nullable=True)
    shop_city = Column(String(100), nullable=False, default='')
    shop_state = Column(String(100), nullable=False, default='')
    shop_zip_code = Column(String(20), nullable=False, default='')
    shop_logo_url = Column(String(500), nullable=False, default='')
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    currency = Column(String(10), nullable=False, default='USD')
    warranty_period = Column(Integer, nullable=False, default=30)
    warranty_terms = Column(Text, nullable=True, default=DEFAULT_WARRANTY_TERMS)
    receipt_footer = Column(Text, nullable=True, default=DEFAULT_RECEIPT_FOOTER)
    business_registration = Column(String(255), nullable=False, default='')
    tax_id = Column(String(255), nullable=False, default='')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ShopSettings(id={self.id}, shop_name='{self.shop_name}')>"

    @staticmethod
    def defaults():
        """Settings returned when the shop has not saved any yet."""
        return {
            'shopName': 'My POS Shop',
            'shopPhone': '',
            'shopEmail': '',
            'shopAddress': '',
            'shopCity': '',
            'shopState': '',
            'shopZipCode': '',
            'shopLogoUrl': '',
            'taxRate': 0,
            'currency': 'USD',
            'warrantyPeriod': 30,
            'warrantyTerms': DEFAULT_WARRANTY_TERMS,
            'receiptFooter': DEFAULT_RECEIPT_FOOTER,
            'businessRegistration': '',
            'taxId': '',
        }

    def to_dict(self):
        data = {'id': self.id}
        for key, attr in SETTINGS_FIELDS.items():
            data[key] = getattr(self, attr)
        data['taxRate'] = money_float(self.tax_rate)
        return data
