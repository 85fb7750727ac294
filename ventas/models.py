from sqlalchemy import Column, Integer, Numeric, String, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship
from .db import Base


class OrderRow(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True, index=True)
    date = Column(DateTime, nullable=False)
    customer = Column(String(100), nullable=False)
    total = Column(Numeric(18, 2), nullable=False, default=0)
    status = Column(String(50), nullable=False, default="Pending", server_default="Pending")
    # Relación 1 a N con los detalles; borrar la orden borra sus detalles
    details = relationship(
        "OrderDetailRow",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderDetailRow.id",
    )
    # Una sola orden por cliente y fecha
    __table_args__ = (Index("ix_orders_customer_date", "customer", "date", unique=True),)


class OrderDetailRow(Base):
    __tablename__ = "order_details"
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(18, 2), nullable=False)
    order = relationship("OrderRow", back_populates="details")
