"""
Domain-split SQLAlchemy models with a single aggregator.

Exposes `Base`, `now_utc` and all ORM classes so callers can simply
`from erp.db import models`.
"""

from .base import Base, now_utc, today_utc  # re-export

# Domain models
from .users import User, UserRole, Department
from .permissions import RolePermission
from .customers import Customer
from .inventory import Product, RawMaterial, MaterialTransaction, ProductRecipe
from .orders import Order, OrderItem
from .production import ProductionOrder, ProductionProcess
from .tasks import Task, TaskAssignment
from .notifications import UserNotificationPreference, Notification, EmailNotificationLog
from .audit import AuditLog
from .reports import Report

__all__ = [
    # base
    "Base",
    "now_utc",
    "today_utc",
    # users/roles
    "User",
    "UserRole",
    "Department",
    "RolePermission",
    # sales/inventory
    "Customer",
    "Product",
    "RawMaterial",
    "MaterialTransaction",
    "ProductRecipe",
    "Order",
    "OrderItem",
    # production/tasks
    "ProductionOrder",
    "ProductionProcess",
    "Task",
    "TaskAssignment",
    # notifications
    "UserNotificationPreference",
    "Notification",
    "EmailNotificationLog",
    # audit/reports
    "AuditLog",
    "Report",
]
