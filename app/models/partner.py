"""Partner model."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
from app.utils.formatters import iso_datetime
import enum


class PartnerType(str, enum.Enum):
    INVESTOR = 'investor'
    SUPPLIER = 'supplier'


class Partner(Base):
    """Partner (investor or supplier)."""

    __tablename__ = 'partners'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)
    phone_no = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    investments = relationship('Investment', back_populates='partner')

    def __repr__(self):
        return f"<Partner(id={self.id}, name='{self.name}', type='{self.type}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'phone_no': self.phone_no,
            'created_at': iso_datetime(self.created_at),
            'updated_at': iso_datetime(self.updated_at),
        }
