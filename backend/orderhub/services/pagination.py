"""Sorting and page slicing for order result sets."""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple

from .. import schemas
from ..constants import SortField
from .criteria import SortSpec


def _amount_key(order: Any) -> float:
    return order.amount if order.amount is not None else 0


SORT_KEYS: Dict[str, Callable[[Any], Any]] = {
    SortField.DATE.value: lambda order: order.date,
    SortField.CUSTOMER.value: lambda order: order.customer.lower(),
    SortField.AMOUNT.value: _amount_key,
    SortField.CREATED_AT.value: lambda order: order.created_at,
}


def page_window(page: int, limit: int) -> Tuple[int, int]:
    """Return ``(skip, limit)`` for a 1-based page."""
    return (page - 1) * limit, limit


def build_pagination(page: int, limit: int, total: int) -> schemas.Pagination:
    total_pages = math.ceil(total / limit) if total else 0
    return schemas.Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def sort_orders(orders: Iterable[Any], sort: SortSpec) -> List[Any]:
    # sorted() is stable in both directions, so ties keep collection order
    return sorted(orders, key=SORT_KEYS[sort.field], reverse=sort.descending)


def slice_page(orders: Sequence[Any], skip: int, limit: int) -> List[Any]:
    """Out-of-range windows give an empty page rather than an error."""
    if skip >= len(orders):
        return []
    return list(orders[skip : skip + limit])
