"""Tests for SalesRepository against a SQLite database."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import UUID

import pytest
import pytest_asyncio

from store.db.context import StoreDbContext
from store.db.errors import ConcurrencyConflict, ConstraintViolation
from store.db.repositories import SalesRepository
from store.models import (
    Currency,
    Customer,
    Employee,
    Order,
    OrderDetail,
    OrderStatus,
    PaymentMethod,
    Shipper,
    UserInfo,
)


@dataclass
class Reference:
    """Reference rows shared by the order tests."""

    currency_id: int
    employee_id: int
    payment_method_id: UUID
    shipper_id: int
    created_status_id: int
    shipped_status_id: int


@pytest_asyncio.fixture
async def reference(context: StoreDbContext) -> Reference:
    """Seed lookups, one employee, one shipper and customers 5 and 7."""
    employee = Employee(
        first_name="Jane",
        middle_name="Q",
        last_name="Public",
        birth_date=datetime(1990, 4, 1),
    )
    shipper = Shipper(company_name="Speedy Express", contact_name="Sam")
    payment_method = PaymentMethod(
        payment_method_name="Credit Card",
        payment_method_description="Visa or Mastercard",
    )

    context.add(OrderStatus(order_status_id=100, description="Created"))
    context.add(OrderStatus(order_status_id=300, description="Shipped"))
    context.add(Currency(currency_id=1000, currency_name="US Dollar", currency_symbol="$"))
    context.add(Customer(customer_id=5, company_name="Acme", contact_name="J. Doe"))
    context.add(Customer(customer_id=7, company_name="Globex", contact_name=None))
    context.add(employee)
    context.add(shipper)
    context.add(payment_method)
    await context.commit()

    return Reference(
        currency_id=1000,
        employee_id=employee.employee_id,
        payment_method_id=payment_method.payment_method_id,
        shipper_id=shipper.shipper_id,
        created_status_id=100,
        shipped_status_id=300,
    )


def make_order(customer_id: int, status_id: int = 100, **overrides) -> Order:
    """Create an unsaved order."""
    values = {
        "customer_id": customer_id,
        "order_status_id": status_id,
        "order_date": datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
        "total": Decimal("29.99"),
        "comments": "Leave at the door",
    }
    values.update(overrides)
    return Order(**values)


@pytest_asyncio.fixture
async def orders(sales: SalesRepository, reference: Reference) -> list[Order]:
    """Two orders for customer 5 (one with every optional reference), one for 7."""
    orders = [
        make_order(
            customer_id=5,
            currency_id=reference.currency_id,
            employee_id=reference.employee_id,
            payment_method_id=reference.payment_method_id,
            shipper_id=reference.shipper_id,
        ),
        make_order(customer_id=5, status_id=reference.shipped_status_id),
        make_order(customer_id=7),
    ]
    for order in orders:
        await sales.add_order(order)
    return orders


@pytest_asyncio.fixture
async def order(sales: SalesRepository, reference: Reference) -> Order:
    """One saved order without details."""
    order = make_order(customer_id=5)
    await sales.add_order(order)
    return order


def make_detail(product_id: int, quantity: int = 1) -> OrderDetail:
    return OrderDetail(
        product_id=product_id,
        product_name=f"Product {product_id}",
        unit_price=Decimal("9.99"),
        quantity=quantity,
        total=Decimal("9.99") * quantity,
    )


class TestCustomers:
    """Customer CRUD."""

    @pytest.mark.asyncio
    async def test_get_missing_customer_returns_none(self, sales: SalesRepository):
        assert await sales.get_customer(Customer(customer_id=12345)) is None

    @pytest.mark.asyncio
    async def test_add_then_get_customer(self, sales: SalesRepository):
        customer = Customer(customer_id=0, company_name="Acme", contact_name="J. Doe")

        affected = await sales.add_customer(customer)
        found = await sales.get_customer(Customer(customer_id=customer.customer_id))

        assert affected == 1
        assert found is not None
        assert found.company_name == "Acme"
        assert found.contact_name == "J. Doe"

    @pytest.mark.asyncio
    async def test_update_customer(self, sales: SalesRepository):
        customer = Customer(company_name="Acme", contact_name="J. Doe")
        await sales.add_customer(customer)

        customer.contact_name = "R. Roe"
        affected = await sales.update_customer(customer)
        found = await sales.get_customer(customer)

        assert affected == 1
        assert found.contact_name == "R. Roe"

    @pytest.mark.asyncio
    async def test_delete_customer(self, sales: SalesRepository):
        customer = Customer(company_name="Acme")
        await sales.add_customer(customer)

        affected = await sales.delete_customer(customer)

        assert affected == 1
        assert await sales.get_customer(customer) is None

    @pytest.mark.asyncio
    async def test_delete_customer_with_orders_violates_constraint(
        self, sales: SalesRepository, reference: Reference
    ):
        await sales.add_order(make_order(customer_id=5))

        with pytest.raises(ConstraintViolation):
            await sales.delete_customer(Customer(customer_id=5))

    @pytest.mark.asyncio
    async def test_get_customers(self, sales: SalesRepository, reference: Reference):
        customers = await sales.get_customers().all()
        assert {c.customer_id for c in customers} == {5, 7}


class TestGetOrders:
    """Filtered OrderInfo projection."""

    @pytest.mark.asyncio
    async def test_filter_by_customer(self, sales: SalesRepository, orders: list[Order]):
        result = await sales.get_orders(customer_id=5).all()

        assert len(result) == 2
        assert {o.order_id for o in result} == {orders[0].order_id, orders[1].order_id}
        assert all(o.customer_id == 5 for o in result)

    @pytest.mark.asyncio
    async def test_no_filters_returns_all(self, sales: SalesRepository, orders: list[Order]):
        result = await sales.get_orders().all()
        assert len(result) == 3

    @pytest.mark.asyncio
    async def test_filter_by_status(
        self, sales: SalesRepository, reference: Reference, orders: list[Order]
    ):
        result = await sales.get_orders(order_status_id=reference.shipped_status_id).all()

        assert [o.order_id for o in result] == [orders[1].order_id]
        assert result[0].order_status_description == "Shipped"

    @pytest.mark.asyncio
    async def test_filter_by_optional_references(
        self, sales: SalesRepository, reference: Reference, orders: list[Order]
    ):
        filters = [
            {"currency_id": reference.currency_id},
            {"employee_id": reference.employee_id},
            {"payment_method_id": reference.payment_method_id},
            {"shipper_id": reference.shipper_id},
        ]
        for kwargs in filters:
            result = await sales.get_orders(**kwargs).all()
            assert [o.order_id for o in result] == [orders[0].order_id], kwargs

    @pytest.mark.asyncio
    async def test_filters_are_combined(
        self, sales: SalesRepository, reference: Reference, orders: list[Order]
    ):
        assert await sales.get_orders(customer_id=7, shipper_id=reference.shipper_id).count() == 0
        assert await sales.get_orders(customer_id=5, shipper_id=reference.shipper_id).count() == 1

    @pytest.mark.asyncio
    async def test_joined_fields_populated(
        self, sales: SalesRepository, reference: Reference, orders: list[Order]
    ):
        info = await sales.get_orders(shipper_id=reference.shipper_id).first()

        assert info.currency_currency_name == "US Dollar"
        assert info.currency_currency_symbol == "$"
        assert info.customer_company_name == "Acme"
        assert info.customer_contact_name == "J. Doe"
        assert info.employee_first_name == "Jane"
        assert info.employee_middle_name == "Q"
        assert info.employee_last_name == "Public"
        assert info.employee_birth_date == datetime(1990, 4, 1)
        assert info.order_status_description == "Created"
        assert info.payment_method_payment_method_name == "Credit Card"
        assert info.payment_method_payment_method_description == "Visa or Mastercard"
        assert info.shipper_company_name == "Speedy Express"
        assert info.shipper_contact_name == "Sam"
        assert info.total == Decimal("29.99")
        assert info.creation_user == "tester"

    @pytest.mark.asyncio
    async def test_absent_optional_references_default_to_empty(
        self, sales: SalesRepository, orders: list[Order]
    ):
        info = await sales.get_orders(customer_id=7).first()

        assert info.currency_id is None
        assert info.employee_id is None
        assert info.payment_method_id is None
        assert info.shipper_id is None
        assert info.currency_currency_name == ""
        assert info.currency_currency_symbol == ""
        assert info.employee_first_name == ""
        assert info.employee_middle_name == ""
        assert info.employee_last_name == ""
        assert info.employee_birth_date is None
        assert info.payment_method_payment_method_name == ""
        assert info.payment_method_payment_method_description == ""
        assert info.shipper_company_name == ""
        assert info.shipper_contact_name == ""
        # Null contact name of a required reference also comes back empty
        assert info.customer_contact_name == ""

    @pytest.mark.asyncio
    async def test_projection_is_composable(
        self, sales: SalesRepository, orders: list[Order]
    ):
        query = sales.get_orders().filter_by(customer_company_name="Globex")
        assert await query.count() == 1

        query = sales.get_orders()
        newest_first = await query.order_by(query.c.order_id.desc()).limit(2).all()
        assert [o.order_id for o in newest_first] == [
            orders[2].order_id,
            orders[1].order_id,
        ]

    def test_statement_shape(self):
        repo = SalesRepository(UserInfo(name="tester"), StoreDbContext(MagicMock()))
        compiled = str(
            repo.get_orders(customer_id=5).statement.compile(
                compile_kwargs={"literal_binds": True}
            )
        ).lower()

        assert "join customers on" in compiled
        assert "join order_statuses on" in compiled
        for table in ("currencies", "employees", "payment_methods", "shippers"):
            assert f"left outer join {table}" in compiled
        assert "coalesce" in compiled
        assert "orders.customer_id = 5" in compiled

    def test_absent_filters_are_not_applied(self):
        repo = SalesRepository(UserInfo(name="tester"), StoreDbContext(MagicMock()))
        compiled = str(repo.get_orders().statement).lower()
        assert "where" not in compiled


class TestOrders:
    """Order CRUD with details and optimistic concurrency."""

    @pytest.mark.asyncio
    async def test_get_missing_order_returns_none(self, sales: SalesRepository):
        assert await sales.get_order(Order(order_id=999)) is None

    @pytest.mark.asyncio
    async def test_add_order_with_details_round_trip(
        self, sales: SalesRepository, reference: Reference
    ):
        order = make_order(
            customer_id=5,
            shipper_id=reference.shipper_id,
            order_details=[make_detail(1, quantity=2), make_detail(2)],
        )

        affected = await sales.add_order(order)
        found = await sales.get_order(Order(order_id=order.order_id))

        assert affected == 3
        assert order.order_id is not None
        assert all(d.order_id == order.order_id for d in order.order_details)
        assert found is not None
        assert found.customer_id == 5
        assert found.order_status_id == 100
        assert found.shipper_id == reference.shipper_id
        assert found.order_date == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert found.total == Decimal("29.99")
        assert found.comments == "Leave at the door"
        assert found.row_version == order.row_version
        assert sorted(d.product_id for d in found.order_details) == [1, 2]
        assert {d.quantity for d in found.order_details} == {1, 2}

    @pytest.mark.asyncio
    async def test_order_dates_read_back_timezone_aware(
        self, sales: SalesRepository, reference: Reference
    ):
        local = timezone(timedelta(hours=2))
        order = make_order(
            customer_id=5, order_date=datetime(2024, 1, 15, 12, 30, tzinfo=local)
        )
        await sales.add_order(order)

        found = await sales.get_order(Order(order_id=order.order_id))
        assert found.order_date == order.order_date
        assert found.order_date.utcoffset() == timedelta(0)
        assert found.creation_date_time.tzinfo is not None

        await sales.update_order(found)
        updated = await sales.get_order(found)
        assert updated.last_update_date_time.tzinfo is not None

        info = (await sales.get_orders(customer_id=5).all())[0]
        assert info.order_date == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_add_order_stamps_creation_audit(
        self, sales: SalesRepository, reference: Reference
    ):
        order = make_order(customer_id=5)
        await sales.add_order(order)
        found = await sales.get_order(order)

        assert found.creation_user == "tester"
        assert found.creation_date_time is not None
        assert found.last_update_user is None

    @pytest.mark.asyncio
    async def test_add_order_for_unknown_customer_violates_constraint(
        self, sales: SalesRepository, reference: Reference
    ):
        with pytest.raises(ConstraintViolation):
            await sales.add_order(make_order(customer_id=404))

    @pytest.mark.asyncio
    async def test_update_with_current_token(
        self, sales: SalesRepository, reference: Reference
    ):
        await sales.add_order(make_order(customer_id=5))
        order = (await sales.get_orders(customer_id=5).all())[0]
        stored = await sales.get_order(Order(order_id=order.order_id))
        old_version = stored.row_version

        stored.comments = "Ring twice"
        affected = await sales.update_order(stored)
        found = await sales.get_order(stored)

        assert affected == 1
        assert stored.row_version != old_version
        assert found.row_version == stored.row_version
        assert found.comments == "Ring twice"
        assert found.last_update_user == "tester"
        assert found.creation_user == "tester"

    @pytest.mark.asyncio
    async def test_update_with_stale_token_conflicts(
        self, sales: SalesRepository, reference: Reference
    ):
        order = make_order(customer_id=5)
        await sales.add_order(order)

        first = await sales.get_order(Order(order_id=order.order_id))
        second = await sales.get_order(Order(order_id=order.order_id))

        first.comments = "First writer"
        await sales.update_order(first)

        second.comments = "Second writer"
        with pytest.raises(ConcurrencyConflict):
            await sales.update_order(second)

        found = await sales.get_order(order)
        assert found.comments == "First writer"

    @pytest.mark.asyncio
    async def test_update_order_updates_details(
        self, sales: SalesRepository, reference: Reference
    ):
        order = make_order(customer_id=5, order_details=[make_detail(1), make_detail(2)])
        await sales.add_order(order)

        stored = await sales.get_order(Order(order_id=order.order_id))
        changed = next(d for d in stored.order_details if d.product_id == 1)
        changed.quantity = 5
        changed.total = Decimal("49.95")

        assert await sales.update_order(stored) == 3

        found = await sales.get_order_detail(
            OrderDetail(order_id=order.order_id, product_id=1)
        )
        assert found.quantity == 5
        assert found.total == Decimal("49.95")
        untouched = await sales.get_order_detail(
            OrderDetail(order_id=order.order_id, product_id=2)
        )
        assert untouched.quantity == 1

    @pytest.mark.asyncio
    async def test_update_order_with_removed_detail_conflicts(
        self, sales: SalesRepository, reference: Reference
    ):
        order = make_order(customer_id=5, order_details=[make_detail(1)])
        await sales.add_order(order)
        stored = await sales.get_order(Order(order_id=order.order_id))

        await sales.delete_order_detail(
            OrderDetail(order_id=order.order_id, product_id=1)
        )

        with pytest.raises(ConcurrencyConflict) as exc_info:
            await sales.update_order(stored)
        assert exc_info.value.entity_type is OrderDetail

    @pytest.mark.asyncio
    async def test_update_keeps_creation_audit(
        self, sales: SalesRepository, reference: Reference
    ):
        order = make_order(customer_id=5)
        await sales.add_order(order)

        changes = make_order(
            customer_id=5,
            order_id=order.order_id,
            row_version=order.row_version,
            total=Decimal("10.00"),
        )
        assert await sales.update_order(changes) == 1

        found = await sales.get_order(order)
        assert found.total == Decimal("10.00")
        assert found.creation_user == "tester"

    @pytest.mark.asyncio
    async def test_delete_order_removes_details(
        self, sales: SalesRepository, reference: Reference
    ):
        order = make_order(customer_id=5, order_details=[make_detail(1), make_detail(2)])
        await sales.add_order(order)

        affected = await sales.delete_order(order)

        assert affected == 3
        assert await sales.get_order(order) is None
        assert await sales.get_order_detail(OrderDetail(order_id=order.order_id, product_id=1)) is None

    @pytest.mark.asyncio
    async def test_delete_with_stale_token_conflicts(
        self, sales: SalesRepository, reference: Reference
    ):
        order = make_order(customer_id=5)
        await sales.add_order(order)
        stale = order.model_copy()

        order.comments = "Changed"
        await sales.update_order(order)

        with pytest.raises(ConcurrencyConflict):
            await sales.delete_order(stale)
        assert await sales.get_order(order) is not None


class TestOrderDetails:
    """Order detail CRUD by composite key."""

    @pytest.mark.asyncio
    async def test_add_get_update_delete(self, sales: SalesRepository, order: Order):
        detail = make_detail(10)
        detail.order_id = order.order_id

        assert await sales.add_order_detail(detail) == 1

        key = OrderDetail(order_id=order.order_id, product_id=10)
        found = await sales.get_order_detail(key)
        assert found.product_name == "Product 10"

        found.quantity = 4
        found.total = Decimal("39.96")
        assert await sales.update_order_detail(found) == 1
        assert (await sales.get_order_detail(key)).quantity == 4

        assert await sales.delete_order_detail(key) == 1
        assert await sales.get_order_detail(key) is None

    @pytest.mark.asyncio
    async def test_same_product_twice_violates_constraint(
        self, sales: SalesRepository, order: Order
    ):
        first = make_detail(10)
        first.order_id = order.order_id
        await sales.add_order_detail(first)

        duplicate = make_detail(10)
        duplicate.order_id = order.order_id
        with pytest.raises(ConstraintViolation):
            await sales.add_order_detail(duplicate)

    @pytest.mark.asyncio
    async def test_other_product_of_same_order_allowed(
        self, sales: SalesRepository, order: Order
    ):
        for product_id in (10, 11):
            detail = make_detail(product_id)
            detail.order_id = order.order_id
            await sales.add_order_detail(detail)

        found = await sales.get_order(order)
        assert len(found.order_details) == 2


class TestShippers:
    """Shipper CRUD."""

    @pytest.mark.asyncio
    async def test_crud(self, sales: SalesRepository):
        shipper = Shipper(company_name="Federal Shipping", contact_name="Fred")
        assert await sales.add_shipper(shipper) == 1

        shipper.contact_name = "Frida"
        assert await sales.update_shipper(shipper) == 1
        assert (await sales.get_shipper(Shipper(shipper_id=shipper.shipper_id))).contact_name == "Frida"

        assert [s.shipper_id for s in await sales.get_shippers().all()] == [shipper.shipper_id]

        assert await sales.delete_shipper(shipper) == 1
        assert await sales.get_shipper(shipper) is None


class TestOrderStatuses:
    """Order status CRUD."""

    @pytest.mark.asyncio
    async def test_crud(self, sales: SalesRepository):
        status = OrderStatus(order_status_id=500, description="Delivered")
        assert await sales.add_order_status(status) == 1

        status.description = "Delivered to customer"
        assert await sales.update_order_status(status) == 1
        found = await sales.get_order_status(OrderStatus(order_status_id=500))
        assert found.description == "Delivered to customer"

        assert await sales.get_order_statuses().count() == 1

        assert await sales.delete_order_status(status) == 1
        assert await sales.get_order_status(status) is None

    @pytest.mark.asyncio
    async def test_delete_missing_status_conflicts(self, sales: SalesRepository):
        with pytest.raises(ConcurrencyConflict):
            await sales.delete_order_status(OrderStatus(order_status_id=1))


class TestLookups:
    """Currency and payment method lists."""

    @pytest.mark.asyncio
    async def test_currencies_and_payment_methods(
        self, sales: SalesRepository, reference: Reference
    ):
        currencies = await sales.get_currencies().all()
        methods = await sales.get_payment_methods().all()

        assert [c.currency_symbol for c in currencies] == ["$"]
        assert [m.payment_method_id for m in methods] == [reference.payment_method_id]
