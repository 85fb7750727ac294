# Contrato de persistencia de órdenes + implementación SQLAlchemy (la de memoria está en memory.py)
import abc
import logging
from contextlib import contextmanager
from datetime import datetime, time
from typing import Iterator, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .domain import Order, OrderDetail, OrderStatus
from .errors import StorageFault
from .models import OrderDetailRow, OrderRow

logger = logging.getLogger(__name__)


def day_bounds(value: datetime) -> Tuple[datetime, datetime]:
    # [00:00:00, 23:59:59.999999] del mismo día
    day = value.date()
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


class OrderStore(abc.ABC):
    @abc.abstractmethod
    def get_by_id(self, order_id: int) -> Optional[Order]:
        ...

    @abc.abstractmethod
    def get_all(self) -> List[Order]:
        ...

    @abc.abstractmethod
    def get_paged(
        self,
        page_number: int,
        page_size: int,
        customer_filter: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Tuple[List[Order], int]:
        # Filtra, cuenta antes de paginar, ordena por fecha desc y pagina
        ...

    @abc.abstractmethod
    def exists_on_date(self, customer: str, date: datetime, exclude_id: Optional[int] = None) -> bool:
        ...

    @abc.abstractmethod
    def create(self, order: Order) -> Order:
        ...

    @abc.abstractmethod
    def replace(self, order: Order) -> Order:
        ...

    @abc.abstractmethod
    def delete(self, order_id: int) -> bool:
        ...

    @abc.abstractmethod
    def commit(self) -> int:
        ...

    @contextmanager
    def transaction(self) -> Iterator["OrderStore"]:
        # Agrupa un chequeo + escritura; cada variante decide cómo aislarlo
        yield self

    def close(self) -> None:
        pass


# ---------- Mapeo fila <-> agregado ----------
def _to_domain(row: OrderRow) -> Order:
    order = Order(
        id=row.id,
        date=row.date,
        customer=row.customer,
        status=OrderStatus(row.status),
        details=[
            OrderDetail(id=d.id, order_id=row.id, product=d.product, quantity=d.quantity, unit_price=d.unit_price)
            for d in row.details
        ],
    )
    order.total = row.total
    return order


def _apply(row: OrderRow, order: Order) -> None:
    row.date = order.date
    row.customer = order.customer
    row.status = OrderStatus(order.status).value
    row.total = order.total
    # El set guardado pasa a ser exactamente el de la orden: las filas que no
    # aparecen quedan huérfanas y se borran; los detalles sin id son filas nuevas
    current = {r.id: r for r in row.details}
    rows = []
    for d in order.details:
        r = current.get(d.id) if d.id is not None else None
        if r is None:
            r = OrderDetailRow()
        r.product = d.product
        r.quantity = d.quantity
        r.unit_price = d.unit_price
        rows.append(r)
    row.details = rows


class SqlOrderStore(OrderStore):
    def __init__(self, db: Session):
        self.db = db
        self._pending = 0

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            self._pending = 0
            logger.warning("Storage fault while trying to %s: %s", action, e)
            raise StorageFault(f"Storage error ({action}): {e.__class__.__name__}") from e

    def _query(self):
        return self.db.query(OrderRow).options(selectinload(OrderRow.details))

    def get_by_id(self, order_id: int) -> Optional[Order]:
        with self._guard("get order"):
            row = self._query().filter(OrderRow.id == order_id).first()
            return _to_domain(row) if row else None

    def get_all(self) -> List[Order]:
        with self._guard("list orders"):
            return [_to_domain(r) for r in self._query().order_by(OrderRow.id).all()]

    def get_paged(self, page_number, page_size, customer_filter=None, date_from=None, date_to=None):
        with self._guard("page orders"):
            q = self._query()
            if customer_filter and customer_filter.strip():
                q = q.filter(OrderRow.customer.icontains(customer_filter.strip(), autoescape=True))
            if date_from is not None:
                q = q.filter(OrderRow.date >= date_from)
            if date_to is not None:
                q = q.filter(OrderRow.date <= date_to)

            # Contar antes de paginar
            total = q.order_by(None).count()
            rows = (
                q.order_by(OrderRow.date.desc(), OrderRow.id.desc())
                .offset((page_number - 1) * page_size)
                .limit(page_size)
                .all()
            )
            return [_to_domain(r) for r in rows], total

    def exists_on_date(self, customer, date, exclude_id=None) -> bool:
        start, end = day_bounds(date)
        with self._guard("check duplicate"):
            q = self.db.query(OrderRow.id).filter(
                OrderRow.customer == customer, OrderRow.date >= start, OrderRow.date <= end
            )
            if exclude_id is not None:
                q = q.filter(OrderRow.id != exclude_id)
            return self.db.query(q.exists()).scalar()

    def create(self, order: Order) -> Order:
        with self._guard("create order"):
            row = OrderRow()
            _apply(row, order)
            self.db.add(row)
            # flush: obtiene los ids sin cerrar la transacción
            self.db.flush()
            self._pending += 1
            order.id = row.id
            return _to_domain(row)

    def replace(self, order: Order) -> Order:
        with self._guard("replace order"):
            row = self.db.get(OrderRow, order.id)
            if row is None:
                raise StorageFault(f"Cannot replace missing order {order.id}")
            _apply(row, order)
            self.db.flush()
            self._pending += 1
            return _to_domain(row)

    def delete(self, order_id: int) -> bool:
        with self._guard("delete order"):
            row = self.db.get(OrderRow, order_id)
            if row is None:
                return False
            self.db.delete(row)
            self.db.flush()
            self._pending += 1
            return True

    def commit(self) -> int:
        with self._guard("commit"):
            self.db.commit()
        count, self._pending = self._pending, 0
        return count

    @contextmanager
    def transaction(self):
        try:
            yield self
        except Exception:
            self.db.rollback()
            self._pending = 0
            raise

    def close(self) -> None:
        self.db.close()
