from opsboard.models.day_of_week import DayOfWeek
from opsboard.models.user import User
from opsboard.models.reference import Unit, Pickup, Entity, OrderType, Service, Department, Recurrence
from opsboard.models.client import Client
from opsboard.models.supplier import Supplier
from opsboard.models.document import Document
from opsboard.models.product import Product, ProductBatch
from opsboard.models.purchase import Purchase, PurchaseItem
from opsboard.models.order import Order, OrderItem
from opsboard.models.task import Task
from opsboard.models.reminder import Reminder
from opsboard.models.site import Site, Refill
from opsboard.models.open_product import OpenProduct, OpenProductItem

__all__ = [
    "DayOfWeek",
    "User",
    "Unit",
    "Pickup",
    "Entity",
    "OrderType",
    "Service",
    "Department",
    "Recurrence",
    "Client",
    "Supplier",
    "Document",
    "Product",
    "ProductBatch",
    "Purchase",
    "PurchaseItem",
    "Order",
    "OrderItem",
    "Task",
    "Reminder",
    "Site",
    "Refill",
    "OpenProduct",
    "OpenProductItem",
]
