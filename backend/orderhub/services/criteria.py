"""Translate a validated list query into store-agnostic filter and sort specs."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Optional

from .. import errors, schemas
from ..constants import SortField, SortOrder

# Fields a free-text search looks at, in match order.
SEARCH_FIELDS = ("customer", "id", "category", "source", "geo")


def _contains(haystack: Any, needle: str) -> bool:
    if haystack is None:
        return False
    return needle.lower() in str(haystack).lower()


@dataclass(frozen=True)
class OrderCriteria:
    """What a store must filter on.

    ``search`` and the per-field substrings are mutually exclusive: when a
    search term is present the builder leaves category/source/geo empty.
    Tenant scope and the date range apply in both cases.
    """

    account_id: Optional[str] = None
    category: Optional[str] = None
    source: Optional[str] = None
    geo: Optional[str] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
    search: Optional[str] = None

    def substring_filters(self) -> dict[str, str]:
        return {
            field: value
            for field, value in (("category", self.category), ("source", self.source), ("geo", self.geo))
            if value
        }

    def matches(self, order: Any) -> bool:
        if self.account_id is not None and getattr(order, "account_id", None) != self.account_id:
            return False
        if self.date_from is not None and order.date < self.date_from:
            return False
        if self.date_to is not None and order.date > self.date_to:
            return False
        if self.search:
            return any(_contains(getattr(order, field, None), self.search) for field in SEARCH_FIELDS)
        return all(_contains(getattr(order, field), value) for field, value in self.substring_filters().items())


@dataclass(frozen=True)
class SortSpec:
    field: str = SortField.DATE.value
    descending: bool = True


def validate_date_range(date_from: Optional[dt.date], date_to: Optional[dt.date]) -> None:
    if date_from is not None and date_to is not None and date_from > date_to:
        raise errors.InvalidDateRange(date_from.isoformat(), date_to.isoformat())


def build_criteria(query: schemas.OrderQuery, account_id: Optional[str] = None) -> OrderCriteria:
    validate_date_range(query.date_from, query.date_to)
    if query.search:
        return OrderCriteria(
            account_id=account_id,
            date_from=query.date_from,
            date_to=query.date_to,
            search=query.search,
        )
    return OrderCriteria(
        account_id=account_id,
        category=query.category,
        source=query.source,
        geo=query.geo,
        date_from=query.date_from,
        date_to=query.date_to,
    )


def build_sort(query: schemas.OrderQuery) -> SortSpec:
    return SortSpec(field=SortField(query.sort_by).value, descending=query.sort_order == SortOrder.DESC)
