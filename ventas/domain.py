from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PROCESSED = "Processed"


@dataclass
class OrderDetail:
    product: str
    quantity: int
    unit_price: Decimal
    id: Optional[int] = None
    # Referencia a la orden dueña, solo para consulta
    order_id: Optional[int] = None

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass
class Order:
    date: datetime
    customer: str
    details: List[OrderDetail] = field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    total: Decimal = Decimal("0")
    id: Optional[int] = None

    def compute_total(self) -> Decimal:
        self.total = sum((d.subtotal for d in self.details), Decimal("0"))
        return self.total

    def is_valid(self) -> bool:
        return (
            bool(self.customer and self.customer.strip())
            and len(self.details) > 0
            and all(d.quantity > 0 and d.unit_price >= 0 for d in self.details)
            and self.total >= 0
        )

    def replace_details(self, details: Iterable[OrderDetail]) -> None:
        # Se descartan todos los detalles anteriores, nunca se mezclan
        self.details = [
            OrderDetail(product=d.product, quantity=d.quantity, unit_price=d.unit_price, order_id=self.id)
            for d in details
        ]
        self.compute_total()

    def mark_processed(self) -> bool:
        if self.status == OrderStatus.PROCESSED:
            return False
        self.status = OrderStatus.PROCESSED
        return True

    def copy(self) -> "Order":
        return copy.deepcopy(self)
