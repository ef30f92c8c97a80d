"""
Document model - a titled bundle of uploaded file links
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime
from opsboard.database import Base


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    links = Column(JSON, nullable=False, default=list)  # public URLs from the file storage
    imported_on = Column(DateTime, default=datetime.utcnow, index=True)
