import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import ORDER_STORE, PROCESSOR_ENABLED, PROCESSOR_INTERVAL_SECONDS, LOG_LEVEL
from .auth import ADMIN, VENDOR, CurrentUser, authenticate, create_access_token, require_roles
from .db import Base, engine, SessionLocal
from .errors import OrderError
from .memory import InMemoryOrderStore
from .processor import OrderProcessor
from .repository import OrderStore, SqlOrderStore
from .schemas import CreateOrderRequest, GetPageRequest, OrderResult, PagedResult, UpdateOrderRequest
from .service import OrderService

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger(__name__)

# ---------- DB init ----------
Base.metadata.create_all(bind=engine)

# Instancia única compartida por todos los requests cuando ORDER_STORE=memory
memory_store = InMemoryOrderStore()


def get_store():
    if ORDER_STORE == "memory":
        yield memory_store
        return
    db = SessionLocal()
    try:
        yield SqlOrderStore(db)
    finally:
        db.close()


def get_service(store: OrderStore = Depends(get_store)) -> OrderService:
    return OrderService(store)


def new_store() -> OrderStore:
    # El procesador abre su propia sesión en cada ciclo
    return memory_store if ORDER_STORE == "memory" else SqlOrderStore(SessionLocal())


@asynccontextmanager
async def lifespan(app: FastAPI):
    processor = None
    if PROCESSOR_ENABLED:
        processor = OrderProcessor(new_store, interval=PROCESSOR_INTERVAL_SECONDS)
        processor.start()
    yield
    if processor is not None:
        processor.stop(join=True)


app = FastAPI(title="Ventas Service", lifespan=lifespan)

can_read = require_roles(ADMIN, VENDOR)
admin_only = require_roles(ADMIN)


# ---------- Errores ----------
@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError) -> JSONResponse:
    if exc.code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.code,
        content={"detail": exc.message, "error_type": type(exc).__name__},
    )


# ---------- Auth ----------
class LoginIn(BaseModel):
    username: str
    password: str


@app.post("/login")
def login(payload: LoginIn):
    if not payload.username.strip() or not payload.password.strip():
        raise HTTPException(status_code=400, detail="Username and password are required")
    user = authenticate(payload.username, payload.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = create_access_token(data={"sub": user.username, "role": user.role})
    return {"access_token": token, "token_type": "bearer", "role": user.role}


# ---------- Endpoints utilitarios ----------
@app.get("/health")
def health(): return {"ok": True, "store": ORDER_STORE}


# ---------- Endpoints de negocio ----------
@app.get("/orders", response_model=PagedResult)
def list_orders(
    page_number: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1),
    customer_filter: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    service: OrderService = Depends(get_service),
    user: CurrentUser = Depends(can_read),
):
    request = GetPageRequest(
        page_number=page_number,
        page_size=page_size,
        customer_filter=customer_filter,
        date_from=date_from,
        date_to=date_to,
    )
    return service.get_page(request)


@app.get("/orders/{order_id}", response_model=OrderResult)
def get_order(order_id: int, service: OrderService = Depends(get_service), user: CurrentUser = Depends(can_read)):
    return service.get(order_id)


@app.post("/orders", status_code=201, response_model=OrderResult)
def create_order(payload: CreateOrderRequest, service: OrderService = Depends(get_service), user: CurrentUser = Depends(can_read)):
    logger.info("User %s (%s) creating order for %s", user.username, user.role, payload.customer)
    return service.create(payload)


@app.put("/orders/{order_id}", response_model=OrderResult)
def update_order(
    order_id: int,
    payload: UpdateOrderRequest,
    service: OrderService = Depends(get_service),
    admin: CurrentUser = Depends(admin_only),
):
    return service.update(order_id, payload)


@app.delete("/orders/{order_id}", status_code=204)
def delete_order(order_id: int, service: OrderService = Depends(get_service), admin: CurrentUser = Depends(admin_only)):
    service.delete(order_id)
    return Response(status_code=204)
