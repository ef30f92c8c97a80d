"""
Client model
"""
from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from opsboard.database import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(250), nullable=False)
    surname = Column(String(250), nullable=True)
    address = Column(String(400), nullable=True)
    email = Column(String(250), nullable=True, index=True)
    phone = Column(String(250), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
