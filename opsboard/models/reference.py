"""
Reference data models - single-label lookup tables managed by the generic CRUD router
"""
from sqlalchemy import Column, Integer, String
from opsboard.database import Base


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, index=True)
    unit_type = Column(String, unique=True, nullable=False)


class Pickup(Base):
    __tablename__ = "pickups"

    id = Column(Integer, primary_key=True, index=True)
    pickup = Column(String, unique=True, nullable=False)


class Entity(Base):
    __tablename__ = "entities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)


class OrderType(Base):
    __tablename__ = "order_types"

    id = Column(Integer, primary_key=True, index=True)
    order_type = Column(String, unique=True, nullable=False)


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    service_type = Column(String, unique=True, nullable=False)


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)


class Recurrence(Base):
    __tablename__ = "recurrences"

    id = Column(Integer, primary_key=True, index=True)
    recurrence_type = Column(String, unique=True, nullable=False)
