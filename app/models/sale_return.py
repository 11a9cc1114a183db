"""Sale return model."""
import json
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
from app.utils.formatters import money_float, iso_datetime


class SaleReturn(Base):
    """Refund recorded against a sale."""

    __tablename__ = 'returns'

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(Integer, ForeignKey('sales.id', ondelete='CASCADE'), nullable=False, index=True)
    reason = Column(String(255), nullable=False)
    refund_amount = Column(Numeric(10, 2), nullable=False)
    items_data = Column(Text, nullable=True)  # JSON list of returned items
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    sale = relationship('Sale', back_populates='returns')

    def __repr__(self):
        return f"<SaleReturn(id={self.id}, sale_id={self.sale_id}, refund={self.refund_amount})>"

    @property
    def items(self):
        if not self.items_data:
            return []
        return json.loads(self.items_data)

    def to_dict(self):
        return {
            'id': self.id,
            'sale_id': self.sale_id,
            'reason': self.reason,
            'refund_amount': money_float(self.refund_amount),
            'items': self.items,
            'invoice': self.sale.invoice if self.sale else None,
            'customer_name': self.sale.customer_name if self.sale else None,
            'original_amount': money_float(self.sale.total_amount) if self.sale else None,
            'created_at': iso_datetime(self.created_at),
            'updated_at': iso_datetime(self.updated_at),
        }
