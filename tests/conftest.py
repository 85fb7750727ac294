"""Pytest fixtures for the ventas tests."""

import os

# Antes de importar ventas.config / ventas.db
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-ventas")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ORDER_STORE", "sql")

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ventas.db import Base, make_engine
from ventas.memory import InMemoryOrderStore
from ventas.repository import SqlOrderStore
from ventas.schemas import CreateOrderRequest, UpdateOrderRequest
from ventas.service import OrderService


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def sql_store(session):
    return SqlOrderStore(session)


@pytest.fixture
def memory_store():
    return InMemoryOrderStore()


@pytest.fixture(params=["sql", "memory"])
def store(request):
    """Every contract test runs against both store variants."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def service(store):
    return OrderService(store)


def details(*items):
    return [{"product": p, "quantity": q, "unit_price": Decimal(str(price))} for p, q, price in items]


def create_request(customer="Acme", date=datetime(2025, 1, 15, 10, 30), items=(("Widget", 5, "100.00"), ("Gadget", 3, "150.00"))):
    return CreateOrderRequest(date=date, customer=customer, details=details(*items))


def update_request(customer="Acme", date=datetime(2025, 1, 15, 10, 30), items=(("Widget", 2, "100.00"),)):
    return UpdateOrderRequest(date=date, customer=customer, details=details(*items))
