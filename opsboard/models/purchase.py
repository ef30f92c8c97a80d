"""
Purchase models - supplier pickups, either on a fixed date or recurring weekly
"""
from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
from opsboard.database import Base
from opsboard.models.day_of_week import DayOfWeek


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True, index=True)
    pickup_id = Column(Integer, ForeignKey("pickups.id"), nullable=False)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False)

    # Scheduling - day set means weekly recurrence, otherwise date governs
    date = Column(DateTime, nullable=True, index=True)
    day = Column(Enum(DayOfWeek, native_enum=False), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    pickup = relationship("Pickup")
    supplier = relationship("Supplier")
    items = relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id",
    )


class PurchaseItem(Base):
    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True, index=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Float, nullable=False)

    # Relationships
    purchase = relationship("Purchase", back_populates="items")
    product = relationship("Product")
