"""Order query service: cached listing and statistics, write-through mutations."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, TypeVar

from .. import errors, schemas
from ..cache import ResultCache, SingleFlight, canonical_key
from ..constants import ORDERS_CACHE_NAMESPACE, STATS_CACHE_PREFIX
from ..store import OrderStore
from .criteria import build_criteria, build_sort
from .pagination import build_pagination, page_window
from .stats import stats_from_aggregate

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ORDERS_TTL = 5 * 60
DEFAULT_STATS_TTL = 10 * 60
NULLABLE_FIELDS = frozenset({"amount"})


def orders_cache_key(query: schemas.OrderQuery, account_id: Optional[str]) -> str:
    parts = query.model_dump(mode="json")
    parts["account"] = account_id
    return canonical_key(ORDERS_CACHE_NAMESPACE, parts)


def stats_cache_key(account_id: Optional[str]) -> str:
    return f"{STATS_CACHE_PREFIX}:{account_id or 'all'}"


class OrderQueryService:
    """Composition root for order reads and writes.

    Reads go cache first; a miss builds criteria, queries the store and
    caches the assembled response. Writes go to the store and, only once the
    write succeeded, clear the whole cache.
    """

    def __init__(
        self,
        store: OrderStore,
        cache: ResultCache,
        orders_ttl: float = DEFAULT_ORDERS_TTL,
        stats_ttl: float = DEFAULT_STATS_TTL,
        single_flight: bool = False,
    ) -> None:
        self.store = store
        self.cache = cache
        self.orders_ttl = orders_ttl
        self.stats_ttl = stats_ttl
        self._flight: Optional[SingleFlight] = SingleFlight() if single_flight else None

    async def _store_call(self, operation: str, call: Awaitable[T], **context: Any) -> T:
        try:
            return await call
        except errors.StoreError:
            logger.exception("order store %s failed (%s)", operation, context)
            raise

    async def _cached(self, key: str, ttl: float, compute: Callable[[], Awaitable[T]]) -> T:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("cache hit %s", key)
            return cached

        logger.debug("cache miss %s", key)

        async def fill() -> T:
            generation = self.cache.generation
            result = await compute()
            if self.cache.generation == generation:
                self.cache.set(key, result, ttl)
            else:
                logger.debug("cache cleared during fill, not storing %s", key)
            return result

        if self._flight is not None:
            return await self._flight.do(key, fill)
        return await fill()

    async def list_orders(
        self, query: schemas.OrderQuery, account_id: Optional[str] = None
    ) -> schemas.OrderListResponse:
        criteria = build_criteria(query, account_id)
        key = orders_cache_key(query, account_id)

        async def compute() -> schemas.OrderListResponse:
            skip, limit = page_window(query.page, query.limit)
            records, total = await self._store_call(
                "find", self.store.find(criteria, build_sort(query), skip, limit), account=account_id
            )
            return schemas.OrderListResponse(
                orders=[schemas.OrderOut.model_validate(record) for record in records],
                pagination=build_pagination(query.page, query.limit, total),
                filters=schemas.AppliedFilters(
                    category=query.category,
                    source=query.source,
                    geo=query.geo,
                    date_from=query.date_from,
                    date_to=query.date_to,
                    search=query.search,
                ),
            )

        return await self._cached(key, self.orders_ttl, compute)

    async def get_stats(self, account_id: Optional[str] = None) -> schemas.OrderStats:
        async def compute() -> schemas.OrderStats:
            aggregate = await self._store_call("aggregate", self.store.aggregate(account_id), account=account_id)
            return stats_from_aggregate(aggregate)

        return await self._cached(stats_cache_key(account_id), self.stats_ttl, compute)

    async def get_order(self, order_id: str, account_id: Optional[str] = None) -> Optional[schemas.OrderOut]:
        record = await self._store_call("get_one", self.store.get_one(order_id, account_id), order_id=order_id)
        return schemas.OrderOut.model_validate(record) if record is not None else None

    async def count_orders(self, account_id: Optional[str] = None) -> int:
        return await self._store_call("count", self.store.count(account_id), account=account_id)

    async def create_order(self, data: schemas.OrderCreate, account_id: str) -> schemas.OrderOut:
        if not account_id:
            raise errors.ValidationError(
                "An account is required to create an order",
                fields=[{"field": "accountId", "message": "Account ID is required", "code": "missing"}],
            )
        record = {**data.model_dump(), "account_id": account_id}
        created = await self._store_call("insert", self.store.insert(record), account=account_id)
        self.cache.clear()
        logger.info("order %s created for account %s", created.id, account_id)
        return schemas.OrderOut.model_validate(created)

    async def update_order(
        self,
        order_id: str,
        partial: schemas.OrderUpdate,
        account_id: Optional[str] = None,
    ) -> Optional[schemas.OrderOut]:
        # amount is the only field that may be cleared explicitly
        changes = {
            field: value
            for field, value in partial.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_FIELDS
        }
        updated = await self._store_call(
            "update_one", self.store.update_one(order_id, changes, account_id), order_id=order_id
        )
        if updated is None:
            return None
        self.cache.clear()
        logger.info("order %s updated (%s)", order_id, ", ".join(sorted(changes)) or "no fields")
        return schemas.OrderOut.model_validate(updated)

    async def delete_order(self, order_id: str, account_id: Optional[str] = None) -> bool:
        deleted = await self._store_call(
            "delete_one", self.store.delete_one(order_id, account_id), order_id=order_id
        )
        if deleted:
            self.cache.clear()
            logger.info("order %s deleted", order_id)
        return deleted

    async def clear_orders(self, account_id: Optional[str] = None) -> int:
        removed = await self._store_call("delete_many", self.store.delete_many(account_id), account=account_id)
        self.cache.clear()
        logger.info("removed %d orders (account=%s)", removed, account_id or "all")
        return removed

    async def load_seed_data(self, orders: Iterable[schemas.OrderCreate], account_id: str) -> int:
        records = [{**order.model_dump(), "account_id": account_id} for order in orders]
        created = await self._store_call("insert_many", self.store.insert_many(records), account=account_id)
        self.cache.clear()
        return created

    def cache_info(self) -> Dict[str, Any]:
        info = self.cache.info()
        info["orders_ttl"] = self.orders_ttl
        info["stats_ttl"] = self.stats_ttl
        info["single_flight"] = self._flight is not None
        return info
