"""Entity maps for sales tables."""

from uuid import uuid4

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Uuid,
)

from store.db.mapping.base import EntityMap, OwnedCollection
from store.db.mapping.columns import UTCDateTime
from store.models.sales import (
    Currency,
    Customer,
    Order,
    OrderDetail,
    OrderStatus,
    PaymentMethod,
    Shipper,
)


class CustomerMap(EntityMap[Customer]):
    entity_type = Customer
    table_name = "customers"
    key = ("customer_id",)
    identity = "customer_id"

    def columns(self):
        return [
            Column("customer_id", Integer, primary_key=True, autoincrement=True),
            Column("company_name", String(100), nullable=False),
            Column("contact_name", String(100)),
        ]


class ShipperMap(EntityMap[Shipper]):
    entity_type = Shipper
    table_name = "shippers"
    key = ("shipper_id",)
    identity = "shipper_id"

    def columns(self):
        return [
            Column("shipper_id", Integer, primary_key=True, autoincrement=True),
            Column("company_name", String(100), nullable=False),
            Column("contact_name", String(100)),
        ]


class OrderStatusMap(EntityMap[OrderStatus]):
    entity_type = OrderStatus
    table_name = "order_statuses"
    key = ("order_status_id",)

    def columns(self):
        return [
            Column("order_status_id", SmallInteger, primary_key=True, autoincrement=False),
            Column("description", String(100), nullable=False),
        ]


class CurrencyMap(EntityMap[Currency]):
    entity_type = Currency
    table_name = "currencies"
    key = ("currency_id",)

    def columns(self):
        return [
            Column("currency_id", SmallInteger, primary_key=True, autoincrement=False),
            Column("currency_name", String(50), nullable=False),
            Column("currency_symbol", String(10), nullable=False),
        ]


class PaymentMethodMap(EntityMap[PaymentMethod]):
    entity_type = PaymentMethod
    table_name = "payment_methods"
    key = ("payment_method_id",)

    def columns(self):
        return [
            # Generated client-side when the entity leaves it unset
            Column("payment_method_id", Uuid, primary_key=True, default=uuid4),
            Column("payment_method_name", String(50), nullable=False),
            Column("payment_method_description", String(255)),
        ]


class OrderDetailMap(EntityMap[OrderDetail]):
    entity_type = OrderDetail
    table_name = "order_details"
    key = ("order_id", "product_id")

    def columns(self):
        return [
            Column(
                "order_id",
                Integer,
                ForeignKey("orders.order_id", ondelete="CASCADE"),
                primary_key=True,
                autoincrement=False,
            ),
            Column("product_id", Integer, primary_key=True, autoincrement=False),
            Column("product_name", String(255), nullable=False),
            Column("unit_price", Numeric(12, 4), nullable=False),
            Column("quantity", Integer, nullable=False),
            Column("total", Numeric(12, 4), nullable=False),
        ]


class OrderMap(EntityMap[Order]):
    entity_type = Order
    table_name = "orders"
    key = ("order_id",)
    identity = "order_id"
    concurrency_token = "row_version"
    insert_only = ("creation_user", "creation_date_time")
    owned = (
        OwnedCollection(
            field="order_details",
            entity_type=OrderDetail,
            foreign_key="order_id",
            principal_key="order_id",
        ),
    )

    def columns(self):
        return [
            Column("order_id", Integer, primary_key=True, autoincrement=True),
            Column(
                "order_status_id",
                SmallInteger,
                ForeignKey("order_statuses.order_status_id"),
                nullable=False,
            ),
            Column(
                "customer_id",
                Integer,
                ForeignKey("customers.customer_id"),
                nullable=False,
            ),
            Column("employee_id", Integer, ForeignKey("employees.employee_id")),
            Column("shipper_id", Integer, ForeignKey("shippers.shipper_id")),
            Column("order_date", UTCDateTime, nullable=False),
            Column("total", Numeric(12, 4), nullable=False),
            Column("currency_id", SmallInteger, ForeignKey("currencies.currency_id")),
            Column(
                "payment_method_id",
                Uuid,
                ForeignKey("payment_methods.payment_method_id"),
            ),
            Column("comments", String(255)),
            Column("creation_user", String(25), nullable=False),
            Column("creation_date_time", UTCDateTime, nullable=False),
            Column("last_update_user", String(25)),
            Column("last_update_date_time", UTCDateTime),
            Column("row_version", String(32), nullable=False),
        ]
