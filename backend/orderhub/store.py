"""Persistence collaborators for orders.

Both stores speak the same small interface; the query service never touches
SQLAlchemy directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from . import errors
from .constants import OrderStatus, SortField
from .models import Order, new_order_id, utcnow
from .services.criteria import SEARCH_FIELDS, OrderCriteria, SortSpec
from .services.pagination import slice_page, sort_orders
from .services.stats import build_aggregate


class OrderStore(ABC):
    @abstractmethod
    async def find(
        self, criteria: OrderCriteria, sort: SortSpec, skip: int, limit: int
    ) -> Tuple[List[Order], int]:
        """Return one sorted window of matching orders and the total match count."""

    @abstractmethod
    async def aggregate(self, account_id: Optional[str] = None) -> Dict[str, Any]:
        """Return ``{total, totalAmount, averageAmount, categories, sources, locations}``."""

    @abstractmethod
    async def insert(self, record: Mapping[str, Any]) -> Order:
        ...

    @abstractmethod
    async def insert_many(self, records: Iterable[Mapping[str, Any]]) -> int:
        ...

    @abstractmethod
    async def get_one(self, order_id: str, account_id: Optional[str] = None) -> Optional[Order]:
        ...

    @abstractmethod
    async def update_one(
        self, order_id: str, partial: Mapping[str, Any], account_id: Optional[str] = None
    ) -> Optional[Order]:
        ...

    @abstractmethod
    async def delete_one(self, order_id: str, account_id: Optional[str] = None) -> bool:
        ...

    @abstractmethod
    async def delete_many(self, account_id: Optional[str] = None) -> int:
        ...

    @abstractmethod
    async def count(self, account_id: Optional[str] = None) -> int:
        ...


class InMemoryOrderStore(OrderStore):
    """Dict-backed store; insertion order is the natural collection order."""

    def __init__(self) -> None:
        self._orders: Dict[str, Order] = {}

    def _scoped(self, account_id: Optional[str]) -> List[Order]:
        return [o for o in self._orders.values() if account_id is None or o.account_id == account_id]

    def _build(self, record: Mapping[str, Any]) -> Order:
        now = utcnow()
        data = {"status": OrderStatus.PENDING.value, **record}
        return Order(id=data.pop("id", None) or new_order_id(), created_at=now, updated_at=now, **data)

    async def find(self, criteria, sort, skip, limit):
        matched = [order for order in self._orders.values() if criteria.matches(order)]
        return slice_page(sort_orders(matched, sort), skip, limit), len(matched)

    async def aggregate(self, account_id=None):
        return build_aggregate(self._scoped(account_id))

    async def insert(self, record):
        order = self._build(record)
        self._orders[order.id] = order
        return order

    async def insert_many(self, records):
        created = 0
        for record in records:
            await self.insert(record)
            created += 1
        return created

    async def get_one(self, order_id, account_id=None):
        order = self._orders.get(order_id)
        if order is None or (account_id is not None and order.account_id != account_id):
            return None
        return order

    async def update_one(self, order_id, partial, account_id=None):
        order = await self.get_one(order_id, account_id)
        if order is None:
            return None
        for field, value in partial.items():
            setattr(order, field, value)
        order.updated_at = utcnow()
        return order

    async def delete_one(self, order_id, account_id=None):
        if await self.get_one(order_id, account_id) is None:
            return False
        del self._orders[order_id]
        return True

    async def delete_many(self, account_id=None):
        doomed = [order.id for order in self._scoped(account_id)]
        for order_id in doomed:
            del self._orders[order_id]
        return len(doomed)

    async def count(self, account_id=None):
        return len(self._scoped(account_id))


SQL_SORT_COLUMNS = {
    SortField.DATE.value: Order.date,
    SortField.CUSTOMER.value: func.lower(Order.customer),
    SortField.AMOUNT.value: func.coalesce(Order.amount, 0),
    SortField.CREATED_AT.value: Order.created_at,
}


def criteria_conditions(criteria: OrderCriteria) -> list:
    conditions: list = []
    if criteria.account_id is not None:
        conditions.append(Order.account_id == criteria.account_id)
    if criteria.date_from is not None:
        conditions.append(Order.date >= criteria.date_from)
    if criteria.date_to is not None:
        conditions.append(Order.date <= criteria.date_to)
    if criteria.search:
        conditions.append(
            or_(*(getattr(Order, field).icontains(criteria.search, autoescape=True) for field in SEARCH_FIELDS))
        )
    else:
        for field, value in criteria.substring_filters().items():
            conditions.append(getattr(Order, field).icontains(value, autoescape=True))
    return conditions


def _scope(order_id: Optional[str], account_id: Optional[str]) -> list:
    conditions: list = []
    if order_id is not None:
        conditions.append(Order.id == order_id)
    if account_id is not None:
        conditions.append(Order.account_id == account_id)
    return conditions


class SqlOrderStore(OrderStore):
    """SQLAlchemy asyncio store. Driver errors surface as ``StoreError``."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            raise errors.StoreError(operation) from exc

    async def find(self, criteria, sort, skip, limit):
        conditions = criteria_conditions(criteria)
        column = SQL_SORT_COLUMNS[sort.field]
        stmt = (
            select(Order)
            .where(*conditions)
            .order_by(column.desc() if sort.descending else column.asc())
            .offset(skip)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(Order).where(*conditions)
        async with self._session("find") as session:
            total = await session.scalar(count_stmt) or 0
            rows = (await session.scalars(stmt)).all()
        return list(rows), total

    async def aggregate(self, account_id=None):
        conditions = _scope(None, account_id)
        totals_stmt = select(
            func.count(),
            func.coalesce(func.sum(func.coalesce(Order.amount, 0)), 0),
        ).where(*conditions)
        grouped = {
            "categories": Order.category,
            "sources": Order.source,
            "locations": Order.geo,
        }
        async with self._session("aggregate") as session:
            total, total_amount = (await session.execute(totals_stmt)).one()
            breakdowns = {}
            for name, column in grouped.items():
                stmt = select(column, func.count()).where(*conditions).group_by(column)
                breakdowns[name] = {label: count for label, count in (await session.execute(stmt)).all()}
        total_amount = float(total_amount or 0)
        return {
            "total": total,
            "totalAmount": total_amount,
            "averageAmount": total_amount / total if total else 0,
            **breakdowns,
        }

    async def insert(self, record):
        order = Order(**record)
        async with self._session("insert") as session:
            session.add(order)
            await session.commit()
            await session.refresh(order)
        return order

    async def insert_many(self, records):
        orders = [Order(**record) for record in records]
        async with self._session("insert_many") as session:
            session.add_all(orders)
            await session.commit()
        return len(orders)

    async def get_one(self, order_id, account_id=None):
        async with self._session("get_one") as session:
            return await session.scalar(select(Order).where(*_scope(order_id, account_id)))

    async def update_one(self, order_id, partial, account_id=None):
        async with self._session("update_one") as session:
            order = await session.scalar(select(Order).where(*_scope(order_id, account_id)))
            if order is None:
                return None
            for field, value in partial.items():
                setattr(order, field, value)
            order.updated_at = utcnow()
            await session.commit()
            await session.refresh(order)
        return order

    async def delete_one(self, order_id, account_id=None):
        async with self._session("delete_one") as session:
            result = await session.execute(delete(Order).where(*_scope(order_id, account_id)))
            await session.commit()
        return result.rowcount > 0

    async def delete_many(self, account_id=None):
        async with self._session("delete_many") as session:
            result = await session.execute(delete(Order).where(*_scope(None, account_id)))
            await session.commit()
        return result.rowcount

    async def count(self, account_id=None):
        stmt = select(func.count()).select_from(Order).where(*_scope(None, account_id))
        async with self._session("count") as session:
            return await session.scalar(stmt) or 0
