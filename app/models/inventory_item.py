"""Inventory item model."""
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, CheckConstraint
from sqlalchemy.sql import func
from app.database import Base
from app.utils.formatters import money_float, iso_datetime


class InventoryItem(Base):
    """Sellable item with its stock level."""

    __tablename__ = 'inventory'
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column('item_name', String(255), nullable=False)
    sku = Column(String(100), unique=True, nullable=False)
    category = Column(String(255), nullable=True)
    supplier = Column(String(255), nullable=True)
    buy_price = Column(Numeric(10, 2), nullable=False)
    sell_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=0, server_default='0')
    min_stock = Column(Integer, nullable=False, default=0, server_default='0')  # advisory reorder threshold
    description = Column(Text, nullable=True)
    barcode = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<InventoryItem(id={self.id}, name='{self.name}', sku='{self.sku}', quantity={self.quantity})>"

    @property
    def is_low_stock(self):
        return self.quantity <= (self.min_stock or 0)

    def to_dict(self):
        return {
            'id': self.id,
            'item_name': self.name,
            'sku': self.sku,
            'category': self.category,
            'supplier': self.supplier,
            'buy_price': money_float(self.buy_price),
            'sell_price': money_float(self.sell_price),
            'quantity': self.quantity,
            'min_stock': self.min_stock,
            'description': self.description,
            'barcode': self.barcode,
            'created_at': iso_datetime(self.created_at),
            'updated_at': iso_datetime(self.updated_at),
        }
