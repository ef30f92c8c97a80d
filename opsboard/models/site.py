"""
Site model (refill rounds) - every site is visited on a fixed weekday
"""
from sqlalchemy import Column, Integer, String, ForeignKey, Enum
from sqlalchemy.orm import relationship
from opsboard.database import Base
from opsboard.models.day_of_week import DayOfWeek


class Site(Base):
    __tablename__ = "sites"

    id = Column(Integer, primary_key=True, index=True)
    site_name = Column(String, nullable=False)
    day = Column(Enum(DayOfWeek, native_enum=False), nullable=False)
    supervisor = Column(String, nullable=False)

    # Relationships
    refills = relationship(
        "Refill",
        back_populates="site",
        cascade="all, delete-orphan",
        order_by="Refill.id",
    )


class Refill(Base):
    __tablename__ = "refills"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)

    # Relationships
    site = relationship("Site", back_populates="refills")
    product = relationship("Product")
