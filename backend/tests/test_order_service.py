import asyncio
import logging

import pytest

from orderhub import errors, schemas
from orderhub.cache import ResultCache
from orderhub.services.order_service import OrderQueryService, orders_cache_key

pytestmark = pytest.mark.asyncio

ACCOUNT = "acct-1"


async def _seed_two(service, order_factory):
    alice = await service.create_order(order_factory(customer="Alice", category="Electronics", amount=100), ACCOUNT)
    bob = await service.create_order(
        order_factory(customer="Bob", category="Clothing", amount=200, date="2025-01-20"), ACCOUNT
    )
    return alice, bob


async def test_stats_for_two_orders(service, order_factory):
    await _seed_two(service, order_factory)

    stats = await service.get_stats(ACCOUNT)

    assert stats.total == 2
    assert stats.total_amount == 300
    assert stats.average_amount == 150
    assert stats.by_category == {"Electronics": 1, "Clothing": 1}


async def test_second_page_sorted_by_amount(service, order_factory):
    _, bob = await _seed_two(service, order_factory)
    query = schemas.OrderQuery.model_validate({"page": 2, "limit": 1, "sortBy": "amount", "sortOrder": "asc"})

    result = await service.list_orders(query, ACCOUNT)

    assert [order.id for order in result.orders] == [bob.id]
    assert result.orders[0].amount == 200
    assert result.pagination.has_prev is True
    assert result.pagination.has_next is False
    assert result.pagination.total == 2


async def test_repeat_query_is_served_from_cache(service, store, order_factory):
    await _seed_two(service, order_factory)
    query = schemas.OrderQuery()

    first = await service.list_orders(query, ACCOUNT)
    second = await service.list_orders(schemas.OrderQuery(), ACCOUNT)

    assert second is first
    assert store.calls["find"] == 1


async def test_each_mutation_invalidates_cached_lists(service, store, order_factory):
    alice, bob = await _seed_two(service, order_factory)
    query = schemas.OrderQuery()
    await service.list_orders(query, ACCOUNT)

    await service.create_order(order_factory(customer="Carol"), ACCOUNT)
    assert (await service.list_orders(query, ACCOUNT)).pagination.total == 3

    await service.update_order(alice.id, schemas.OrderUpdate(customer="Alicia"), ACCOUNT)
    names = {order.customer for order in (await service.list_orders(query, ACCOUNT)).orders}
    assert "Alicia" in names

    await service.delete_order(bob.id, ACCOUNT)
    assert (await service.list_orders(query, ACCOUNT)).pagination.total == 2

    assert store.calls["find"] == 4


async def test_mutation_invalidates_stats(service, store, order_factory):
    await _seed_two(service, order_factory)
    await service.get_stats(ACCOUNT)
    await service.get_stats(ACCOUNT)
    assert store.calls["aggregate"] == 1

    await service.create_order(order_factory(amount=50), ACCOUNT)
    stats = await service.get_stats(ACCOUNT)

    assert stats.total == 3
    assert store.calls["aggregate"] == 2


async def test_list_and_stats_expire_independently(service, store, clock, order_factory):
    await _seed_two(service, order_factory)
    await service.list_orders(schemas.OrderQuery(), ACCOUNT)
    await service.get_stats(ACCOUNT)

    clock.advance(6 * 60)
    await service.list_orders(schemas.OrderQuery(), ACCOUNT)
    await service.get_stats(ACCOUNT)

    assert store.calls["find"] == 2
    assert store.calls["aggregate"] == 1


async def test_invalid_date_range_never_reaches_cache_or_store(service, store):
    query = schemas.OrderQuery(date_from="2025-02-01", date_to="2025-01-01")

    with pytest.raises(errors.InvalidDateRange):
        await service.list_orders(query, ACCOUNT)

    assert "find" not in store.calls
    assert len(service.cache) == 0
    assert service.cache.stats.misses == 0


async def test_category_filter_matches_substring(service, order_factory):
    await _seed_two(service, order_factory)

    result = await service.list_orders(schemas.OrderQuery(category="elect"), ACCOUNT)

    assert [order.customer for order in result.orders] == ["Alice"]
    assert result.filters.category == "elect"


async def test_search_ignores_field_filters(service, order_factory):
    await _seed_two(service, order_factory)

    result = await service.list_orders(schemas.OrderQuery(category="Electronics", search="bob"), ACCOUNT)

    assert [order.customer for order in result.orders] == ["Bob"]


async def test_tenants_do_not_see_each_other(service, order_factory):
    await _seed_two(service, order_factory)
    await service.create_order(order_factory(customer="Zed", category="Books"), "acct-2")

    mine = await service.list_orders(schemas.OrderQuery(), ACCOUNT)
    theirs = await service.list_orders(schemas.OrderQuery(), "acct-2")

    assert {order.customer for order in mine.orders} == {"Alice", "Bob"}
    assert [order.customer for order in theirs.orders] == ["Zed"]
    assert (await service.get_stats("acct-2")).total == 1
    assert (await service.get_stats(None)).total == 3


async def test_other_tenant_cannot_mutate(service, order_factory):
    alice, _ = await _seed_two(service, order_factory)

    assert await service.update_order(alice.id, schemas.OrderUpdate(amount=1), "acct-2") is None
    assert await service.delete_order(alice.id, "acct-2") is False
    assert (await service.get_order(alice.id, ACCOUNT)).amount == 100


async def test_out_of_range_page_is_empty(service, order_factory):
    await _seed_two(service, order_factory)

    result = await service.list_orders(schemas.OrderQuery(page=9, limit=10), ACCOUNT)

    assert result.orders == []
    assert result.pagination.total == 2
    assert result.pagination.has_prev is True


async def test_update_merges_partial_fields(service, order_factory):
    alice, _ = await _seed_two(service, order_factory)

    updated = await service.update_order(alice.id, schemas.OrderUpdate(status="shipped"), ACCOUNT)

    assert updated.status == "shipped"
    assert updated.customer == "Alice"
    assert updated.amount == 100
    assert updated.updated_at >= alice.updated_at


async def test_missing_order_leaves_cache_alone(service, order_factory):
    await _seed_two(service, order_factory)
    await service.list_orders(schemas.OrderQuery(), ACCOUNT)

    assert await service.update_order("missing", schemas.OrderUpdate(amount=5), ACCOUNT) is None
    assert await service.delete_order("missing", ACCOUNT) is False

    assert len(service.cache) == 1


async def test_failed_write_keeps_cache_and_is_logged(service, store, order_factory, caplog):
    alice, _ = await _seed_two(service, order_factory)
    await service.list_orders(schemas.OrderQuery(), ACCOUNT)
    store.fail_on.add("update_one")

    with caplog.at_level(logging.ERROR, logger="orderhub"):
        with pytest.raises(errors.StoreError):
            await service.update_order(alice.id, schemas.OrderUpdate(amount=1), ACCOUNT)

    assert len(service.cache) == 1
    assert "update_one failed" in caplog.text


async def test_failed_read_is_not_cached(service, store, order_factory):
    await _seed_two(service, order_factory)
    store.fail_on.add("find")

    with pytest.raises(errors.StoreError):
        await service.list_orders(schemas.OrderQuery(), ACCOUNT)

    store.fail_on.clear()
    result = await service.list_orders(schemas.OrderQuery(), ACCOUNT)
    assert result.pagination.total == 2


async def test_create_requires_account(service, order_factory):
    with pytest.raises(errors.ValidationError):
        await service.create_order(order_factory(), "")


async def test_cache_key_is_canonical():
    first = schemas.OrderQuery.model_validate({"category": "Books", "page": 2})
    second = schemas.OrderQuery.model_validate({"page": "2", "category": "Books"})

    assert orders_cache_key(first, ACCOUNT) == orders_cache_key(second, ACCOUNT)
    assert orders_cache_key(first, ACCOUNT) != orders_cache_key(first, "acct-2")


async def test_concurrent_misses_without_single_flight_each_hit_store(store, clock, order_factory):
    service = OrderQueryService(store, ResultCache(clock=clock))
    await _seed_two(service, order_factory)

    await asyncio.gather(*(service.list_orders(schemas.OrderQuery(), ACCOUNT) for _ in range(3)))

    assert store.calls["find"] == 3
    assert len(service.cache) == 1


async def test_single_flight_collapses_concurrent_misses(store, clock, order_factory):
    service = OrderQueryService(store, ResultCache(clock=clock), single_flight=True)
    await _seed_two(service, order_factory)

    results = await asyncio.gather(*(service.list_orders(schemas.OrderQuery(), ACCOUNT) for _ in range(3)))

    assert store.calls["find"] == 1
    assert results[0] is results[1] is results[2]
    assert service.cache_info()["single_flight"] is True


async def test_clear_and_seed_helpers(service, order_factory):
    created = await service.load_seed_data([order_factory(), order_factory(customer="Bob")], ACCOUNT)
    assert created == 2
    assert await service.count_orders(ACCOUNT) == 2

    await service.list_orders(schemas.OrderQuery(), ACCOUNT)
    assert await service.clear_orders(ACCOUNT) == 2
    assert len(service.cache) == 0
    assert await service.count_orders(ACCOUNT) == 0


async def test_fill_started_before_a_write_is_not_cached(gated_store, clock, order_factory):
    store = gated_store
    service = OrderQueryService(store, ResultCache(clock=clock))
    await _seed_two(service, order_factory)

    pending = asyncio.create_task(service.list_orders(schemas.OrderQuery(), ACCOUNT))
    await store.entered.wait()
    await service.create_order(order_factory(customer="Carol"), ACCOUNT)
    store.release.set()
    await pending

    assert len(service.cache) == 0
    assert (await service.list_orders(schemas.OrderQuery(), ACCOUNT)).pagination.total == 3
