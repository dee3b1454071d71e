"""Order statistics: totals, average amount and per-dimension breakdowns."""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Mapping, Union

from .. import schemas

Labels = Union[Mapping[Any, int], Iterable[Any]]


def _breakdown(labels: Labels) -> dict[str, int]:
    """Count labels; a mapping is taken as already grouped ``label -> count``."""
    counts: Counter = Counter()
    if isinstance(labels, Mapping):
        for label, count in labels.items():
            counts["unknown" if label is None else str(label)] += int(count)
    else:
        counts.update("unknown" if label is None else str(label) for label in labels)
    return dict(counts)


def _average(total_amount: float, total: int) -> float:
    return total_amount / total if total else 0


def stats_from_aggregate(aggregate: Mapping[str, Any]) -> schemas.OrderStats:
    """Build statistics from a store aggregate.

    The aggregate carries ``total`` and ``totalAmount`` plus ``categories``,
    ``sources`` and ``locations``: either raw label lists (one entry per
    order) or grouped ``label -> count`` mappings.
    """
    total = int(aggregate.get("total") or 0)
    if not total:
        return schemas.OrderStats()
    total_amount = float(aggregate.get("totalAmount") or 0)
    return schemas.OrderStats(
        total=total,
        total_amount=total_amount,
        average_amount=_average(total_amount, total),
        by_category=_breakdown(aggregate.get("categories", ())),
        by_source=_breakdown(aggregate.get("sources", ())),
        by_location=_breakdown(aggregate.get("locations", ())),
    )


def build_aggregate(orders: Iterable[Any]) -> dict[str, Any]:
    rows = list(orders)
    total_amount = sum(order.amount or 0 for order in rows)
    return {
        "total": len(rows),
        "totalAmount": total_amount,
        "averageAmount": _average(total_amount, len(rows)),
        "categories": [order.category for order in rows],
        "sources": [order.source for order in rows],
        "locations": [order.geo for order in rows],
    }


def summarize_orders(orders: Iterable[Any]) -> schemas.OrderStats:
    return stats_from_aggregate(build_aggregate(orders))
