"""
Store data models.

This package contains all Pydantic models for the Store sales data-access layer.
"""

# Base models
from store.models.base import AuditedModel

# Human resources models
from store.models.human_resources import Employee

# Sales models
from store.models.sales import (
    Currency,
    Customer,
    Order,
    OrderDetail,
    OrderInfo,
    OrderStatus,
    PaymentMethod,
    Shipper,
)

# User models
from store.models.user import UserInfo

__all__ = [
    # Base
    "AuditedModel",
    # Human resources
    "Employee",
    # Sales
    "Currency",
    "Customer",
    "Order",
    "OrderDetail",
    "OrderInfo",
    "OrderStatus",
    "PaymentMethod",
    "Shipper",
    # User
    "UserInfo",
]
