"""
Open product model - products opened at a site, backed by a document
"""
from sqlalchemy import Column, Integer, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from opsboard.database import Base


class OpenProduct(Base):
    __tablename__ = "open_products"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    site = relationship("Site")
    document = relationship("Document")
    products = relationship(
        "OpenProductItem",
        back_populates="open_product",
        cascade="all, delete-orphan",
        order_by="OpenProductItem.id",
    )


class OpenProductItem(Base):
    __tablename__ = "open_product_items"

    id = Column(Integer, primary_key=True, index=True)
    open_product_id = Column(Integer, ForeignKey("open_products.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    open_product = relationship("OpenProduct", back_populates="products")
    product = relationship("Product")
