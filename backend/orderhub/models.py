"""SQLAlchemy models."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Index, Numeric, String, func

from .database import Base


def new_order_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_order_id)
    account_id = Column(String(64), nullable=False, index=True)
    customer = Column(String(100), nullable=False)
    category = Column(String(32), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    source = Column(String(32), nullable=False, index=True)
    geo = Column(String(100), nullable=False, index=True)
    amount = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    status = Column(String(16), nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_orders_account_date", "account_id", "date"),
        Index("ix_orders_account_created", "account_id", "created_at"),
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Order id={self.id} customer={self.customer!r} status={self.status}>"
