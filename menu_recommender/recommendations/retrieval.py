"""
Recommendation entry points.

``Recommender.compute`` is cache-aside around the strategy pipeline:
derive a key, check the request memo, then the cache, and only on a miss
run the strategies and write the result back.
"""
from __future__ import annotations

import logging
import random
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterable

from ..analytics.store import record_event
from ..config import DEFAULT_CONFIG, RecommenderConfig
from .cache import CacheFront, build_backend
from .data_store import DataFrameItemStore, ItemStore
from .keys import is_degenerate, make_cache_key
from .models import (
    RecommendationItem,
    RecommendationRequest,
    RecommendationResponse,
    StrategyKind,
)
from .pipeline import ResultAssembler, StrategyPipeline
from .sql_store import SqlItemStore

logger = logging.getLogger(__name__)

PEOPLE_ALSO_BOUGHT_SOURCES = [StrategyKind.frequently_bought_together, StrategyKind.popular]
PERSONALIZED_SOURCES = [StrategyKind.customer_history, StrategyKind.popular]


@dataclass
class RequestContext:
    """Request-scoped memo so repeated lookups within one request skip the cache."""

    memo: dict[str, list[RecommendationItem]] = field(default_factory=dict)


class Recommender:
    def __init__(
        self,
        store: ItemStore,
        cache: CacheFront,
        config: RecommenderConfig = DEFAULT_CONFIG,
        rng: random.Random | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.cache = cache
        self.config = config
        self.pipeline = StrategyPipeline(store, rng=rng, clock=clock)
        self.assembler = ResultAssembler()

    def compute(
        self, request: RecommendationRequest, context: RequestContext | None = None,
    ) -> list[RecommendationItem]:
        return self.compute_response(request, context).recommendations

    def compute_response(
        self, request: RecommendationRequest, context: RequestContext | None = None,
    ) -> RecommendationResponse:
        start_time = time.time()

        if is_degenerate(request):
            return RecommendationResponse(recommendations=[], cache_hit=False)

        key = make_cache_key(request, self.config.cache_prefix)

        if context is not None and key in context.memo:
            return RecommendationResponse(recommendations=list(context.memo[key]), cache_hit=True)

        cached = self.cache.get(key)
        if cached is not None:
            if context is not None:
                context.memo[key] = list(cached)
            self._record(request, cached, start_time, cache_hit=True)
            return RecommendationResponse(recommendations=cached, cache_hit=True)

        batches = self.pipeline.run(request)
        items = self.assembler.assemble(batches, request.limit, request.excluded_ids())

        self.cache.put(key, items)
        if context is not None:
            context.memo[key] = list(items)
        self._record(request, items, start_time, cache_hit=False)
        return RecommendationResponse(recommendations=items, cache_hit=False)

    def people_also_bought(self, cart_item_ids: Iterable[str], limit: int) -> list[RecommendationItem]:
        request = RecommendationRequest(
            cart_item_ids=set(cart_item_ids),
            limit=limit,
            source_order=PEOPLE_ALSO_BOUGHT_SOURCES,
        )
        return self.compute(request)

    def personalized(self, customer_id: str, limit: int) -> list[RecommendationItem]:
        request = RecommendationRequest(
            customer_id=customer_id,
            limit=limit,
            source_order=PERSONALIZED_SOURCES,
        )
        return self.compute(request)

    def invalidate(self, prefix: str | None = None) -> int:
        return self.cache.invalidate(prefix or self.config.cache_prefix)

    # Called by the menu and order subsystems after writes that can change
    # which items are eligible or how they rank.

    def on_menu_item_changed(self, item_id: str, action: str = "update") -> int:
        logger.info("Menu item %s %s, invalidating recommendations", item_id, action)
        return self.invalidate()

    def on_order_placed(self, order_id: str) -> int:
        logger.info("Order %s placed, invalidating recommendations", order_id)
        return self.invalidate()

    def _record(
        self,
        request: RecommendationRequest,
        items: list[RecommendationItem],
        start_time: float,
        cache_hit: bool,
    ) -> None:
        elapsed_ms = round((time.time() - start_time) * 1000, 1)
        record_event("recommendation", {
            "limit": request.limit,
            "source_order": [k.value for k in request.source_order],
            "has_cart": bool(request.cart_item_ids),
            "has_customer": bool(request.customer_id),
            "category_id": request.category_id,
            "results_returned": len(items),
            "sources": dict(Counter(item.source.value for item in items)),
            "response_time_ms": elapsed_ms,
            "cache_hit": cache_hit,
        })


def build_recommender(config: RecommenderConfig = DEFAULT_CONFIG) -> Recommender:
    if config.database_url:
        store: ItemStore = SqlItemStore.from_url(config.database_url)
    else:
        store = DataFrameItemStore.from_dir(config.data_dir)
    cache = CacheFront(
        build_backend(config.redis_url, timeout=config.redis_timeout),
        ttl_seconds=config.cache_ttl,
    )
    return Recommender(store, cache, config)


_recommender: Recommender | None = None


def get_recommender() -> Recommender:
    """Return the process-wide recommender, building it on first call."""
    global _recommender
    if _recommender is None:
        _recommender = build_recommender()
    return _recommender


def set_recommender(recommender: Recommender | None) -> None:
    global _recommender
    _recommender = recommender
