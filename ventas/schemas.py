import math
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .domain import Order, OrderDetail, OrderStatus


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    # La BD guarda fechas sin zona en hora local, igual que datetime.now()
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# ---------- Requests ----------
class DetailIn(BaseModel):
    product: str
    quantity: int
    unit_price: Decimal

    @field_validator("product", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class UpdateDetailIn(DetailIn):
    # None = detalle nuevo. El update reemplaza todo igual, este id no se usa
    id: Optional[int] = None


class CreateOrderRequest(BaseModel):
    date: datetime
    customer: str
    details: List[DetailIn] = Field(default_factory=list)

    @field_validator("customer", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("date")
    @classmethod
    def naive_date(cls, v):
        return _naive(v)


class UpdateOrderRequest(CreateOrderRequest):
    details: List[UpdateDetailIn] = Field(default_factory=list)


class GetPageRequest(BaseModel):
    page_number: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1)
    customer_filter: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    @field_validator("date_from", "date_to")
    @classmethod
    def naive_dates(cls, v):
        return _naive(v)


# ---------- Results ----------
class DetailResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int]
    order_id: Optional[int]
    product: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class OrderResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: datetime
    customer: str
    total: Decimal
    status: OrderStatus
    details: List[DetailResult]

    @classmethod
    def from_order(cls, o: Order) -> "OrderResult":
        return cls.model_validate(o)


class PagedResult(BaseModel):
    items: List[OrderResult]
    page_number: int
    page_size: int
    total_count: int

    @computed_field
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @computed_field
    @property
    def has_previous(self) -> bool:
        return self.page_number > 1

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages


def details_from_request(details) -> List[OrderDetail]:
    return [OrderDetail(product=d.product, quantity=d.quantity, unit_price=d.unit_price) for d in details]
