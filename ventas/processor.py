"""
OrderProcessor: hilo en segundo plano que procesa órdenes pendientes.

Cada ``interval`` segundos recorre las órdenes y pasa las ``Pending`` a
``Processed``. No es un escritor privilegiado: usa las mismas operaciones del
almacén (y el mismo lock, si es el de memoria) que cualquier otro cliente.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .domain import OrderStatus
from .repository import OrderStore

logger = logging.getLogger(__name__)


class OrderProcessor:
    def __init__(self, store_factory: Callable[[], OrderStore], interval: float = 30.0) -> None:
        """``store_factory`` entrega un almacén por ciclo (una sesión nueva en SQL)."""
        self._store_factory = store_factory
        self.interval = interval
        self.cycles = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="OrderProcessor", daemon=True)
        self._thread.start()
        logger.info("Order processor started (every %ss)", self.interval)

    def stop(self, join: bool = True) -> None:
        self._stop_event.set()
        if join and self._thread is not None:
            self._thread.join()
        logger.info("Order processor stopped")

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        """Un ciclo completo; devuelve cuántas órdenes se procesaron."""
        self.cycles += 1
        store = self._store_factory()
        processed = 0
        try:
            pending = [o.id for o in store.get_all() if o.status == OrderStatus.PENDING]
            logger.info("Cycle #%d: %d pending order(s) found", self.cycles, len(pending))
            for order_id in pending:
                # Se relee dentro de la transacción por si otro la cambió o borró
                with store.transaction():
                    order = store.get_by_id(order_id)
                    if order is None or not order.mark_processed():
                        continue
                    store.replace(order)
                    store.commit()
                processed += 1
                logger.info("Order #%s processed", order_id)
        finally:
            store.close()
        return processed

    # -------------------- hilo --------------------

    def _run(self) -> None:
        # wait() devuelve True apenas se pide stop, sin esperar el intervalo
        while not self._stop_event.wait(self.interval):
            try:
                self.run_once()
            except Exception:
                # Un ciclo fallido no debe matar el hilo
                logger.exception("Cycle #%d failed", self.cycles)
