"""Errores del servicio de ventas. Cada uno lleva mensaje y código numérico."""


class OrderError(Exception):
    """Base de todos los errores de órdenes (500 si no se especifica otro)."""

    code = 500

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class ValidationError(OrderError):
    """Entrada mal formada o fuera de política."""

    code = 400


class NotFoundError(OrderError):
    code = 404

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class ConflictError(OrderError):
    """Ya existe una orden para ese cliente en ese día."""

    code = 409

    def __init__(self, customer: str, date):
        self.customer = customer
        self.date = date
        super().__init__(
            f"Duplicate order for customer {customer} on date {date:%Y-%m-%d}"
        )


class StorageFault(OrderError):
    """Fallo de persistencia ajeno a las reglas de negocio."""

    code = 500
