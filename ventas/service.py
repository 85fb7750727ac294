"""
Casos de uso de órdenes: validar -> modificar el agregado -> persistir -> informar.

Es el único lugar donde se lanzan errores de negocio (ValidationError,
NotFoundError, ConflictError). El almacén solo informa ausencia con None/False.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Sequence

from .domain import Order, OrderStatus
from .errors import ConflictError, NotFoundError, ValidationError
from .repository import OrderStore
from .schemas import (
    CreateOrderRequest,
    DetailIn,
    GetPageRequest,
    OrderResult,
    PagedResult,
    UpdateOrderRequest,
    details_from_request,
)

logger = logging.getLogger(__name__)

# Límites de política
CUSTOMER_MIN_LEN, CUSTOMER_MAX_LEN = 3, 100
PRODUCT_MIN_LEN, PRODUCT_MAX_LEN = 2, 100
MAX_QUANTITY = 9999
MAX_UNIT_PRICE = Decimal("999999.99")
CENT = Decimal("0.01")


def validate_header(customer: str, date: datetime) -> None:
    if not customer or not customer.strip():
        raise ValidationError("Customer is required")
    if not CUSTOMER_MIN_LEN <= len(customer.strip()) <= CUSTOMER_MAX_LEN:
        raise ValidationError(
            f"Customer must be between {CUSTOMER_MIN_LEN} and {CUSTOMER_MAX_LEN} characters"
        )
    if date is None:
        raise ValidationError("Date is required")


def validate_details(details: Sequence[DetailIn]) -> None:
    if not details:
        raise ValidationError("Order must have at least one detail")
    if any(d.quantity <= 0 or d.unit_price < 0 for d in details):
        raise ValidationError("Quantity must be positive and price cannot be negative")
    for d in details:
        if not d.product or not d.product.strip():
            raise ValidationError("Product is required")
        if not PRODUCT_MIN_LEN <= len(d.product.strip()) <= PRODUCT_MAX_LEN:
            raise ValidationError(
                f"Product must be between {PRODUCT_MIN_LEN} and {PRODUCT_MAX_LEN} characters"
            )
        if d.quantity > MAX_QUANTITY:
            raise ValidationError(f"Quantity cannot exceed {MAX_QUANTITY}")
        if d.unit_price > MAX_UNIT_PRICE:
            raise ValidationError(f"Unit price cannot exceed {MAX_UNIT_PRICE}")
        # La BD guarda centavos: más decimales harían que total != suma de subtotales
        if d.unit_price != d.unit_price.quantize(CENT):
            raise ValidationError("Unit price cannot have more than 2 decimal places")


class OrderService:
    def __init__(self, store: OrderStore, clock: Callable[[], datetime] = datetime.now):
        self._store = store
        self._clock = clock

    def create(self, request: CreateOrderRequest) -> OrderResult:
        validate_header(request.customer, request.date)
        if request.date > self._clock():
            raise ValidationError("Date cannot be in the future")
        validate_details(request.details)

        # Chequeo de duplicado + alta en una misma unidad
        with self._store.transaction():
            if self._store.exists_on_date(request.customer, request.date):
                raise ConflictError(request.customer, request.date)

            order = Order(date=request.date, customer=request.customer, status=OrderStatus.PENDING)
            order.replace_details(details_from_request(request.details))
            if not order.is_valid():
                raise ValidationError("Order is not valid")

            saved = self._store.create(order)
            self._store.commit()

        logger.info("Order #%s created for %s (total: %s)", saved.id, saved.customer, saved.total)
        return OrderResult.from_order(saved)

    def get(self, order_id: int) -> OrderResult:
        order = self._store.get_by_id(order_id)
        if order is None:
            raise NotFoundError(order_id)
        return OrderResult.from_order(order)

    def get_page(self, request: GetPageRequest) -> PagedResult:
        orders, total = self._store.get_paged(
            request.page_number,
            request.page_size,
            request.customer_filter,
            request.date_from,
            request.date_to,
        )
        return PagedResult(
            items=[OrderResult.from_order(o) for o in orders],
            page_number=request.page_number,
            page_size=request.page_size,
            total_count=total,
        )

    def update(self, order_id: int, request: UpdateOrderRequest) -> OrderResult:
        with self._store.transaction():
            order = self._store.get_by_id(order_id)
            if order is None:
                raise NotFoundError(order_id)

            validate_header(request.customer, request.date)
            validate_details(request.details)
            if self._store.exists_on_date(request.customer, request.date, exclude_id=order_id):
                raise ConflictError(request.customer, request.date)

            order.date = request.date
            order.customer = request.customer
            # Los ids que traiga el request se ignoran: se reemplaza todo
            order.replace_details(details_from_request(request.details))

            saved = self._store.replace(order)
            self._store.commit()

        logger.info("Order #%s updated (%d detail(s), total: %s)", saved.id, len(saved.details), saved.total)
        return OrderResult.from_order(saved)

    def delete(self, order_id: int) -> bool:
        with self._store.transaction():
            if self._store.get_by_id(order_id) is None:
                raise NotFoundError(order_id)
            deleted = self._store.delete(order_id)
            self._store.commit()

        logger.info("Order #%s deleted", order_id)
        return deleted
