"""
Recommendation strategies.

Each strategy turns ``(need, exclude, request)`` into a batch of at most
``need`` annotated items, ranked by its own criterion. A strategy whose
precondition is not met returns an empty batch without querying the store;
one that runs out of matching data returns a short batch.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Collection

from .data_store import ItemStore
from .models import RecommendationItem, RecommendationRequest, StrategyKind

REASON_FBT = "Frequently bought together"
REASON_HISTORY = "Based on your previous orders"
REASON_POPULAR = "Popular choice"
REASON_FALLBACK = "You might also like"

_SEASONS = {
    12: "Winter", 1: "Winter", 2: "Winter",
    3: "Spring", 4: "Spring", 5: "Spring",
    6: "Summer", 7: "Summer", 8: "Summer",
    9: "Fall", 10: "Fall", 11: "Fall",
}


def season_for(month: int) -> str:
    return _SEASONS[month]


@dataclass(frozen=True)
class StrategyEnv:
    """Per-run inputs that are not part of the request."""

    today: date = field(default_factory=date.today)
    rng: random.Random = field(default_factory=random.Random)


def _to_item(
    record: dict[str, Any],
    kind: StrategyKind,
    reason: str,
    score: float | None = None,
) -> RecommendationItem:
    return RecommendationItem(
        item_id=record["id"],
        name=record["name"],
        price=record["price"],
        category_id=record.get("category_id"),
        active=record["active"],
        available=record["available"],
        reason=reason,
        score=score,
        source=kind,
    )


def _hydrate_ranked(
    store: ItemStore,
    ranked: list[tuple[str, int]],
    need: int,
    exclude: Collection[str],
    kind: StrategyKind,
    reason: str,
    category_id: str | None = None,
) -> list[RecommendationItem]:
    """Attach item details to ``(item_id, count)`` pairs, keeping rank order."""
    ranked = [(item_id, n) for item_id, n in ranked if item_id not in exclude]
    if not ranked:
        return []
    records = store.get_items([item_id for item_id, _ in ranked])
    batch: list[RecommendationItem] = []
    for item_id, n in ranked:
        record = records.get(item_id)
        if record is None:
            continue  # inactive, unavailable or deleted
        if category_id and record.get("category_id") != category_id:
            continue
        batch.append(_to_item(record, kind, reason, float(n)))
        if len(batch) >= need:
            break
    return batch


def frequently_bought_together(
    store: ItemStore,
    need: int,
    exclude: Collection[str],
    request: RecommendationRequest,
    env: StrategyEnv,
) -> list[RecommendationItem]:
    if need <= 0 or not request.cart_item_ids:
        return []
    ranked = store.co_occurrence_counts(sorted(request.cart_item_ids), exclude)
    return _hydrate_ranked(
        store, ranked, need, exclude,
        StrategyKind.frequently_bought_together, REASON_FBT,
    )


def customer_history(
    store: ItemStore,
    need: int,
    exclude: Collection[str],
    request: RecommendationRequest,
    env: StrategyEnv,
) -> list[RecommendationItem]:
    if need <= 0 or not request.customer_id:
        return []
    ranked = store.customer_item_counts(request.customer_id, exclude)
    return _hydrate_ranked(
        store, ranked, need, exclude,
        StrategyKind.customer_history, REASON_HISTORY,
    )


def seasonal(
    store: ItemStore,
    need: int,
    exclude: Collection[str],
    request: RecommendationRequest,
    env: StrategyEnv,
) -> list[RecommendationItem]:
    if need <= 0:
        return []
    season = season_for(env.today.month)
    records = store.list_items(
        category_id=request.category_id,
        exclude=exclude,
        category_name_contains=season,
    )
    reason = f"{season} favorite"
    return [
        _to_item(r, StrategyKind.seasonal, reason)
        for r in records[:need]
    ]


def popular(
    store: ItemStore,
    need: int,
    exclude: Collection[str],
    request: RecommendationRequest,
    env: StrategyEnv,
) -> list[RecommendationItem]:
    if need <= 0:
        return []
    ranked = store.item_order_counts(request.category_id, exclude)
    return _hydrate_ranked(
        store, ranked, need, exclude,
        StrategyKind.popular, REASON_POPULAR,
        category_id=request.category_id,
    )


def random_fallback(
    store: ItemStore,
    need: int,
    exclude: Collection[str],
    request: RecommendationRequest,
    env: StrategyEnv,
) -> list[RecommendationItem]:
    if need <= 0:
        return []
    records = store.list_items(category_id=request.category_id, exclude=exclude)
    picked = env.rng.sample(records, min(need, len(records)))
    return [_to_item(r, StrategyKind.random_fallback, REASON_FALLBACK) for r in picked]


Strategy = Callable[
    [ItemStore, int, Collection[str], RecommendationRequest, StrategyEnv],
    list[RecommendationItem],
]

STRATEGIES: dict[StrategyKind, Strategy] = {
    StrategyKind.frequently_bought_together: frequently_bought_together,
    StrategyKind.customer_history: customer_history,
    StrategyKind.seasonal: seasonal,
    StrategyKind.popular: popular,
    StrategyKind.random_fallback: random_fallback,
}


def needs_store(kind: StrategyKind, request: RecommendationRequest) -> bool:
    """Whether *kind* would query the store for this request."""
    if kind is StrategyKind.frequently_bought_together:
        return bool(request.cart_item_ids)
    if kind is StrategyKind.customer_history:
        return bool(request.customer_id)
    return True
