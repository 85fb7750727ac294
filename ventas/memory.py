# Almacén en memoria: un único RLock protege el dict y el contador de ids; afuera solo salen copias
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, List, Optional

from .domain import Order, OrderStatus
from .errors import ConflictError, NotFoundError, OrderError, StorageFault, ValidationError
from .repository import OrderStore, day_bounds

logger = logging.getLogger(__name__)


class InMemoryOrderStore(OrderStore):
    def __init__(self) -> None:
        self._orders: Dict[int, Order] = {}
        self._next_id = 1
        self._next_detail_id = 1
        # Re-entrante para que transaction() pueda envolver varias operaciones
        self._lock = threading.RLock()
        self._pending = 0

    @property
    def next_id(self) -> int:
        with self._lock:
            return self._next_id

    # -------------------- contrato OrderStore --------------------

    def get_by_id(self, order_id: int) -> Optional[Order]:
        with self._lock:
            order = self._orders.get(order_id)
            return order.copy() if order else None

    def get_all(self) -> List[Order]:
        with self._lock:
            return [o.copy() for o in self._orders.values()]

    def get_paged(self, page_number, page_size, customer_filter=None, date_from=None, date_to=None):
        with self._lock:
            matches = list(self._orders.values())
            if customer_filter and customer_filter.strip():
                needle = customer_filter.strip().lower()
                matches = [o for o in matches if needle in o.customer.lower()]
            if date_from is not None:
                matches = [o for o in matches if o.date >= date_from]
            if date_to is not None:
                matches = [o for o in matches if o.date <= date_to]

            total = len(matches)
            matches.sort(key=lambda o: (o.date, o.id), reverse=True)
            start = (page_number - 1) * page_size
            return [o.copy() for o in matches[start:start + page_size]], total

    def exists_on_date(self, customer, date, exclude_id=None) -> bool:
        start, end = day_bounds(date)
        with self._lock:
            return any(
                o.customer == customer and start <= o.date <= end and o.id != exclude_id
                for o in self._orders.values()
            )

    def create(self, order: Order) -> Order:
        with self._lock:
            stored = order.copy()
            stored.id = self._next_id
            self._next_id += 1
            self._assign_detail_ids(stored)
            self._orders[stored.id] = stored
            self._pending += 1
            order.id = stored.id
            return stored.copy()

    def replace(self, order: Order) -> Order:
        with self._lock:
            if order.id not in self._orders:
                raise StorageFault(f"Cannot replace missing order {order.id}")
            stored = order.copy()
            self._assign_detail_ids(stored)
            self._orders[stored.id] = stored
            self._pending += 1
            return stored.copy()

    def delete(self, order_id: int) -> bool:
        with self._lock:
            if self._orders.pop(order_id, None) is None:
                return False
            self._pending += 1
            return True

    def commit(self) -> int:
        # Cada operación ya es atómica; solo se informa cuántas hubo
        with self._lock:
            count, self._pending = self._pending, 0
            return count

    @contextmanager
    def transaction(self):
        with self._lock:
            yield self

    def _assign_detail_ids(self, order: Order) -> None:
        # Solo los detalles nuevos (sin id) reciben uno
        for d in order.details:
            d.order_id = order.id
            if d.id is None:
                d.id = self._next_detail_id
                self._next_detail_id += 1

    # -------------------- operaciones legacy --------------------

    def register(self, order: Order) -> int:
        try:
            with self._lock:
                logger.info("Registering order for customer: %s", order.customer)

                if not order.customer or not order.customer.strip():
                    raise ValidationError("Customer is required")
                if not order.details:
                    raise ValidationError("Order must have at least one detail")
                if any(d.quantity <= 0 or d.unit_price < 0 for d in order.details):
                    raise ValidationError("Quantity must be positive and price cannot be negative")
                if self.exists_on_date(order.customer, order.date):
                    raise ConflictError(order.customer, order.date)

                order.status = OrderStatus.PENDING
                order.compute_total()
                stored = self.create(order)
                # register ya queda aplicado, no cuenta como pendiente
                self._pending -= 1

                logger.info("Order #%s registered (total: %s)", stored.id, stored.total)
                return stored.id
        except OrderError:
            raise
        except Exception as e:
            logger.exception("Unexpected error registering order")
            raise OrderError(f"Error registering order: {e}", 500) from e

    def fetch(self, order_id: int) -> Order:
        order = self.get_by_id(order_id)
        if order is None:
            raise NotFoundError(order_id)
        return order

    def list_orders(self) -> List[Order]:
        orders = self.get_all()
        logger.info("Listing %d order(s)", len(orders))
        return orders

    def update(self, order: Order) -> bool:
        with self._lock:
            if order.id not in self._orders:
                raise NotFoundError(order.id)
            order.compute_total()
            self.replace(order)
            self._pending -= 1
            logger.info("Order #%s updated", order.id)
            return True

    def remove(self, order_id: int) -> bool:
        with self._lock:
            if not self.delete(order_id):
                raise NotFoundError(order_id)
            self._pending -= 1
            logger.info("Order #%s removed", order_id)
            return True
