"""
Supplier model
"""
from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from opsboard.database import Base


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    contact_method = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
