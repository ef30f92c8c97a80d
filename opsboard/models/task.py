"""
Task model - to-dos scheduled either on a fixed date or on a weekday
"""
from sqlalchemy import Column, Integer, Float, String, Text, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
from opsboard.database import Base
from opsboard.models.day_of_week import DayOfWeek


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(300), nullable=False)
    comment = Column(Text, nullable=True)
    quantity = Column(Float, nullable=False)

    # Scheduling - day set means weekly recurrence, otherwise date governs
    date = Column(DateTime, nullable=True, index=True)
    day = Column(Enum(DayOfWeek, native_enum=False), nullable=True)

    # Optional links
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    entity_id = Column(Integer, ForeignKey("entities.id", ondelete="SET NULL"), nullable=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    product = relationship("Product")
    order = relationship("Order")
    entity = relationship("Entity")
    document = relationship("Document")
