"""Sale model."""
from sqlalchemy import Column, Integer, String, Text, Numeric, Date, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.sql import func
from app.database import Base
from app.utils.formatters import money_float, iso_date, iso_datetime
import enum


class PaymentStatus(str, enum.Enum):
    """Payment status of an invoice."""
    PAID = 'paid'
    UNPAID = 'unpaid'
    PARTIAL = 'partial'

    @classmethod
    def values(cls):
        return [status.value for status in cls]


class Sale(Base):
    """Sale (invoice header)."""

    __tablename__ = 'sales'

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice = Column(String(100), unique=True, nullable=False)
    date = Column(Date, nullable=False)
    customer_name = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    total_amount = Column(Numeric(10, 2), nullable=False)
    paid_amount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    status = Column(String(20), nullable=False, default=PaymentStatus.UNPAID.value)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    lines = relationship(
        'SaleLine',
        back_populates='sale',
        cascade='all, delete-orphan',
        order_by='SaleLine.id'
    )
    returns = relationship('SaleReturn', back_populates='sale', cascade='all, delete-orphan')

    @hybrid_property
    def amount_due(self):
        """Amount still owed: total - paid."""
        return (self.total_amount or 0) - (self.paid_amount or 0)

    def __repr__(self):
        return f"<Sale(id={self.id}, invoice='{self.invoice}', total={self.total_amount}, status={self.status})>"

    def to_dict(self, include_items=False):
        data = {
            'id': self.id,
            'invoice': self.invoice,
            'date': iso_date(self.date),
            'customer_name': self.customer_name,
            'customer_phone': self.customer_phone,
            'subtotal': money_float(self.subtotal),
            'tax_amount': money_float(self.tax_amount),
            'discount_amount': money_float(self.discount_amount),
            'total_amount': money_float(self.total_amount),
            'paid_amount': money_float(self.paid_amount),
            'status': self.status,
            'notes': self.notes,
            'created_at': iso_datetime(self.created_at),
            'updated_at': iso_datetime(self.updated_at),
        }
        if include_items:
            data['items'] = [line.to_dict() for line in self.lines]
        return data
