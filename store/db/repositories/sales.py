"""
Sales repository for database operations.

Handles customers, orders with their details, shippers, order statuses and
the currency/payment-method lookups.
"""

from uuid import UUID

from sqlalchemy import func, select

from store.db.context import Query
from store.db.repositories.base import Repository
from store.models.human_resources import Employee
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


class SalesRepository(Repository):
    """Repository for sales operations."""

    # =========================================================================
    # Customers
    # =========================================================================

    def get_customers(self) -> Query[Customer]:
        return self.context.set(Customer)

    async def get_customer(self, entity: Customer) -> Customer | None:
        return await self.context.find(entity)

    async def add_customer(self, entity: Customer) -> int:
        return await self._add_and_commit(entity)

    async def update_customer(self, changes: Customer) -> int:
        return await self._update_and_commit(changes)

    async def delete_customer(self, entity: Customer) -> int:
        return await self._remove_and_commit(entity)

    # =========================================================================
    # Orders
    # =========================================================================

    def get_orders(
        self,
        currency_id: int | None = None,
        customer_id: int | None = None,
        employee_id: int | None = None,
        order_status_id: int | None = None,
        payment_method_id: UUID | None = None,
        shipper_id: int | None = None,
    ) -> Query[OrderInfo]:
        """
        Get orders joined with their reference data.

        Customer and order status are required (inner joins); currency,
        employee, payment method and shipper are optional (outer joins).
        Text fields of an absent reference come back as "".

        Args:
            currency_id: Optional currency filter
            customer_id: Optional customer filter
            employee_id: Optional employee filter
            order_status_id: Optional status filter
            payment_method_id: Optional payment method filter
            shipper_id: Optional shipper filter

        Returns:
            Lazy query of OrderInfo rows
        """
        orders = self.context.table(Order)
        currencies = self.context.table(Currency)
        customers = self.context.table(Customer)
        employees = self.context.table(Employee)
        order_statuses = self.context.table(OrderStatus)
        payment_methods = self.context.table(PaymentMethod)
        shippers = self.context.table(Shipper)

        def text(column, label: str):
            return func.coalesce(column, "").label(label)

        stmt = (
            select(
                orders.c.order_id,
                orders.c.order_status_id,
                orders.c.customer_id,
                orders.c.employee_id,
                orders.c.shipper_id,
                orders.c.order_date,
                orders.c.total,
                orders.c.currency_id,
                orders.c.payment_method_id,
                orders.c.comments,
                orders.c.creation_user,
                orders.c.creation_date_time,
                orders.c.last_update_user,
                orders.c.last_update_date_time,
                orders.c.row_version,
                text(currencies.c.currency_name, "currency_currency_name"),
                text(currencies.c.currency_symbol, "currency_currency_symbol"),
                text(customers.c.company_name, "customer_company_name"),
                text(customers.c.contact_name, "customer_contact_name"),
                text(employees.c.first_name, "employee_first_name"),
                text(employees.c.middle_name, "employee_middle_name"),
                text(employees.c.last_name, "employee_last_name"),
                employees.c.birth_date.label("employee_birth_date"),
                text(order_statuses.c.description, "order_status_description"),
                text(
                    payment_methods.c.payment_method_name,
                    "payment_method_payment_method_name",
                ),
                text(
                    payment_methods.c.payment_method_description,
                    "payment_method_payment_method_description",
                ),
                text(shippers.c.company_name, "shipper_company_name"),
                text(shippers.c.contact_name, "shipper_contact_name"),
            )
            .select_from(orders)
            .join(customers, orders.c.customer_id == customers.c.customer_id)
            .join(
                order_statuses,
                orders.c.order_status_id == order_statuses.c.order_status_id,
            )
            .outerjoin(currencies, orders.c.currency_id == currencies.c.currency_id)
            .outerjoin(employees, orders.c.employee_id == employees.c.employee_id)
            .outerjoin(
                payment_methods,
                orders.c.payment_method_id == payment_methods.c.payment_method_id,
            )
            .outerjoin(shippers, orders.c.shipper_id == shippers.c.shipper_id)
        )

        filters = [
            (orders.c.currency_id, currency_id),
            (orders.c.customer_id, customer_id),
            (orders.c.employee_id, employee_id),
            (orders.c.order_status_id, order_status_id),
            (orders.c.payment_method_id, payment_method_id),
            (orders.c.shipper_id, shipper_id),
        ]
        for column, value in filters:
            if value is not None:
                stmt = stmt.where(column == value)

        return self.context.query(stmt, OrderInfo)

    async def get_order(self, entity: Order) -> Order | None:
        """Get an order with its details loaded."""
        order = await self.context.find(entity)

        if order is None:
            return None

        return await self.context.load_collection(order, "order_details")

    async def add_order(self, entity: Order) -> int:
        """Add an order together with its details."""
        return await self._add_and_commit(entity)

    async def update_order(self, changes: Order) -> int:
        """
        Update an order row and each of its details.

        The row_version of changes must match the stored one. Details are
        matched by (order_id, product_id) and updated in place; adding or
        removing a detail goes through the order-detail operations.

        Raises:
            ConcurrencyConflict: The order was changed or deleted meanwhile,
                or one of its details no longer exists
        """
        return await self._update_and_commit(changes)

    async def delete_order(self, entity: Order) -> int:
        """Delete an order and its details, checking row_version."""
        return await self._remove_and_commit(entity)

    # =========================================================================
    # Order details
    # =========================================================================

    async def get_order_detail(self, entity: OrderDetail) -> OrderDetail | None:
        return await self.context.find(entity)

    async def add_order_detail(self, entity: OrderDetail) -> int:
        return await self._add_and_commit(entity)

    async def update_order_detail(self, changes: OrderDetail) -> int:
        return await self._update_and_commit(changes)

    async def delete_order_detail(self, entity: OrderDetail) -> int:
        return await self._remove_and_commit(entity)

    # =========================================================================
    # Shippers
    # =========================================================================

    def get_shippers(self) -> Query[Shipper]:
        return self.context.set(Shipper)

    async def get_shipper(self, entity: Shipper) -> Shipper | None:
        return await self.context.find(entity)

    async def add_shipper(self, entity: Shipper) -> int:
        return await self._add_and_commit(entity)

    async def update_shipper(self, changes: Shipper) -> int:
        return await self._update_and_commit(changes)

    async def delete_shipper(self, entity: Shipper) -> int:
        return await self._remove_and_commit(entity)

    # =========================================================================
    # Order statuses
    # =========================================================================

    def get_order_statuses(self) -> Query[OrderStatus]:
        return self.context.set(OrderStatus)

    async def get_order_status(self, entity: OrderStatus) -> OrderStatus | None:
        return await self.context.find(entity)

    async def add_order_status(self, entity: OrderStatus) -> int:
        return await self._add_and_commit(entity)

    async def update_order_status(self, changes: OrderStatus) -> int:
        return await self._update_and_commit(changes)

    async def delete_order_status(self, entity: OrderStatus) -> int:
        return await self._remove_and_commit(entity)

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_currencies(self) -> Query[Currency]:
        return self.context.set(Currency)

    def get_payment_methods(self) -> Query[PaymentMethod]:
        return self.context.set(PaymentMethod)
