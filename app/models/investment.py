"""Investment model."""
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
from app.utils.formatters import money_float, iso_datetime
import enum


class InvestmentType(str, enum.Enum):
    INVEST = 'invest'
    WITHDRAW = 'withdraw'


class Investment(Base):
    """Money a partner put into (or took out of) the business."""

    __tablename__ = 'investments'

    id = Column(Integer, primary_key=True, autoincrement=True)
    partner_id = Column(Integer, ForeignKey('partners.id'), nullable=False, index=True)
    partner_name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    partner = relationship('Partner', back_populates='investments')

    def __repr__(self):
        return f"<Investment(id={self.id}, partner_id={self.partner_id}, type='{self.type}', amount={self.amount})>"

    def to_dict(self):
        return {
            'id': self.id,
            'partner_id': self.partner_id,
            'partner_name': self.partner.name if self.partner else self.partner_name,
            'partner_type': self.partner.type if self.partner else None,
            'type': self.type,
            'amount': money_float(self.amount),
            'notes': self.notes,
            'created_at': iso_datetime(self.created_at),
        }
