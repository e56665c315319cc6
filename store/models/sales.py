from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from store.models.base import AuditedModel


class Customer(BaseModel):
    """Customer placing orders"""

    customer_id: Optional[int] = Field(
        default=None, description="Store-generated customer identifier"
    )
    company_name: Optional[str] = Field(default=None, description="Company name")
    contact_name: Optional[str] = Field(default=None, description="Contact name")


class Shipper(BaseModel):
    """Carrier company delivering orders"""

    shipper_id: Optional[int] = Field(
        default=None, description="Store-generated shipper identifier"
    )
    company_name: Optional[str] = Field(default=None, description="Company name")
    contact_name: Optional[str] = Field(default=None, description="Contact name")


class OrderStatus(BaseModel):
    """Order lifecycle status (lookup)"""

    order_status_id: Optional[int] = Field(
        default=None, description="Caller-assigned status identifier"
    )
    description: Optional[str] = Field(default=None, description="Status name")


class Currency(BaseModel):
    """Currency an order is paid in (lookup)"""

    currency_id: Optional[int] = Field(
        default=None, description="Caller-assigned currency identifier"
    )
    currency_name: Optional[str] = Field(default=None, description="Currency name")
    currency_symbol: Optional[str] = Field(default=None, description="Symbol")


class PaymentMethod(BaseModel):
    """Payment method (lookup)"""

    payment_method_id: Optional[UUID] = Field(
        default=None, description="Payment method identifier"
    )
    payment_method_name: Optional[str] = Field(default=None, description="Name")
    payment_method_description: Optional[str] = Field(
        default=None, description="Description"
    )


class OrderDetail(BaseModel):
    """Line of an order, unique per (order_id, product_id)"""

    order_id: Optional[int] = Field(default=None, description="Parent order ID")
    product_id: Optional[int] = Field(default=None, description="Product ID")
    product_name: Optional[str] = Field(default=None, description="Product name")
    unit_price: Optional[Decimal] = Field(default=None, description="Unit price")
    quantity: Optional[int] = Field(default=None, description="Quantity ordered")
    total: Optional[Decimal] = Field(default=None, description="Line total")


class Order(AuditedModel):
    """Sales order with its owned details"""

    order_id: Optional[int] = Field(
        default=None, description="Store-generated order identifier"
    )
    order_status_id: Optional[int] = Field(default=None, description="Status ID")
    customer_id: Optional[int] = Field(default=None, description="Customer ID")
    employee_id: Optional[int] = Field(default=None, description="Employee ID")
    shipper_id: Optional[int] = Field(default=None, description="Shipper ID")
    order_date: Optional[datetime] = Field(default=None, description="Order date")
    total: Optional[Decimal] = Field(default=None, description="Order total")
    currency_id: Optional[int] = Field(default=None, description="Currency ID")
    payment_method_id: Optional[UUID] = Field(
        default=None, description="Payment method ID"
    )
    comments: Optional[str] = Field(default=None, description="Free-form comments")
    row_version: Optional[str] = Field(
        default=None, description="Concurrency token, replaced on every write"
    )

    order_details: list[OrderDetail] = Field(
        default_factory=list, description="Owned order lines"
    )


class OrderInfo(BaseModel):
    """Read-only order row joined with its reference data"""

    model_config = ConfigDict(frozen=True)

    order_id: int
    order_status_id: int
    customer_id: int
    employee_id: Optional[int] = None
    shipper_id: Optional[int] = None
    order_date: Optional[datetime] = None
    total: Optional[Decimal] = None
    currency_id: Optional[int] = None
    payment_method_id: Optional[UUID] = None
    comments: Optional[str] = None
    creation_user: Optional[str] = None
    creation_date_time: Optional[datetime] = None
    last_update_user: Optional[str] = None
    last_update_date_time: Optional[datetime] = None
    row_version: Optional[str] = None

    currency_currency_name: str = ""
    currency_currency_symbol: str = ""
    customer_company_name: str = ""
    customer_contact_name: str = ""
    employee_first_name: str = ""
    employee_middle_name: str = ""
    employee_last_name: str = ""
    employee_birth_date: Optional[datetime] = None
    order_status_description: str = ""
    payment_method_payment_method_name: str = ""
    payment_method_payment_method_description: str = ""
    shipper_company_name: str = ""
    shipper_contact_name: str = ""
