"""
Product model - catalog items with stock batches
"""
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from datetime import datetime
from opsboard.database import Base


product_documents = Table(
    "product_documents",
    Base.metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("document_id", Integer, ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True),
)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    plu = Column(Integer, nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    product_type = Column(String(255), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    critical_quantity = Column(Float, nullable=False, default=0)
    # True when total batch quantity has fallen to the critical threshold
    restock = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    department = relationship("Department")
    batches = relationship(
        "ProductBatch",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductBatch.id",
    )
    documents = relationship("Document", secondary=product_documents)


class ProductBatch(Base):
    __tablename__ = "product_batches"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Float, nullable=False)
    dlc = Column(DateTime, nullable=False)  # use-by date
    delivery_temp = Column(Float, nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    product = relationship("Product", back_populates="batches")
    unit = relationship("Unit")
    supplier = relationship("Supplier")
