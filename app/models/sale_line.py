"""Sale Line model."""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
from app.utils.formatters import money_float, iso_datetime


class SaleLine(Base):
    """Sale Line (invoice line item).

    item_name and sku are copied from the inventory item when the sale is
    created and are never re-synced, so old invoices keep printing what was sold.
    """

    __tablename__ = 'sales_items'

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(Integer, ForeignKey('sales.id', ondelete='CASCADE'), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey('inventory.id'), nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    sku = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    sale = relationship('Sale', back_populates='lines')
    item = relationship('InventoryItem')

    def __repr__(self):
        return f"<SaleLine(id={self.id}, item_id={self.item_id}, quantity={self.quantity})>"

    def to_dict(self):
        return {
            'id': self.id,
            'sale_id': self.sale_id,
            'item_id': self.item_id,
            'item_name': self.item_name,
            'sku': self.sku,
            'quantity': self.quantity,
            'unit_price': money_float(self.unit_price),
            'line_total': money_float(self.line_total),
            'created_at': iso_datetime(self.created_at),
        }
