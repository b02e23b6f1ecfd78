from __future__ import annotations

import logging
import random
from datetime import date
from typing import Callable, Collection

from .data_store import ItemStore
from .errors import BackendUnavailableError, StoreError
from .models import RecommendationItem, RecommendationRequest, StrategyKind
from .strategies import STRATEGIES, Strategy, StrategyEnv, needs_store

logger = logging.getLogger(__name__)


class ResultAssembler:
    """Merge strategy batches into the final bounded list."""

    def assemble(
        self,
        batches: list[list[RecommendationItem]],
        limit: int,
        exclude: Collection[str] = (),
    ) -> list[RecommendationItem]:
        if limit <= 0:
            return []
        excluded = set(exclude)
        seen: set[str] = set()
        result: list[RecommendationItem] = []
        for batch in batches:
            for item in batch:
                # First occurrence wins: it came from the higher-priority source
                if item.item_id in seen or item.item_id in excluded:
                    continue
                if not (item.active and item.available):
                    continue
                seen.add(item.item_id)
                result.append(item)
                if len(result) >= limit:
                    return result
        return result


class StrategyPipeline:
    """Run strategies in priority order against a shrinking need.

    A strategy that fails with ``StoreError`` is skipped. Only when every
    strategy that actually queried the store failed (the random fallback
    included) does the run raise ``BackendUnavailableError``.
    """

    def __init__(
        self,
        store: ItemStore,
        rng: random.Random | None = None,
        clock: Callable[[], date] = date.today,
        strategies: dict[StrategyKind, Strategy] | None = None,
    ) -> None:
        self.store = store
        self.rng = rng or random.Random()
        self.clock = clock
        self.strategies = strategies or STRATEGIES

    def run(self, request: RecommendationRequest) -> list[list[RecommendationItem]]:
        env = StrategyEnv(today=self.clock(), rng=self.rng)
        excluded = request.excluded_ids()
        chosen: set[str] = set()
        batches: list[list[RecommendationItem]] = []
        attempted = 0
        failed = 0

        def consult(kind: StrategyKind, need: int) -> None:
            nonlocal attempted, failed
            if needs_store(kind, request):
                attempted += 1
            try:
                batch = self.strategies[kind](self.store, need, excluded | chosen, request, env)
            except StoreError:
                failed += 1
                logger.warning("Strategy %s failed, skipping", kind.value, exc_info=True)
                return
            logger.debug("Strategy %s returned %d/%d items", kind.value, len(batch), need)
            batches.append(batch)
            chosen.update(item.item_id for item in batch)

        for kind in request.source_order:
            need = request.limit - len(chosen)
            if need <= 0:
                break
            consult(kind, need)

        need = request.limit - len(chosen)
        if need > 0:
            consult(StrategyKind.random_fallback, need)

        if attempted and failed == attempted:
            raise BackendUnavailableError(
                f"All {attempted} store-backed strategies failed"
            )
        return batches
