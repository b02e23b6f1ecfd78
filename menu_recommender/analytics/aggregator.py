from __future__ import annotations

from collections import Counter
from typing import Any


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    requests = [e for e in events if e["type"] == "recommendation"]
    total = len(requests)

    # Average response time
    times = [r["response_time_ms"] for r in requests if "response_time_ms" in r]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Items contributed per strategy
    source_counter: Counter[str] = Counter()
    for r in requests:
        for source, n in (r.get("sources") or {}).items():
            source_counter[source] += n
    served = sum(source_counter.values())
    source_share = {
        k: round(v / served * 100, 1) if served else 0.0
        for k, v in source_counter.items()
    }

    # Requests that came back short of their limit
    short = sum(1 for r in requests if r.get("results_returned", 0) < r.get("limit", 0))

    # Top categories browsed
    category_counter: Counter[str] = Counter(
        r["category_id"] for r in requests if r.get("category_id")
    )
    top_categories = [{"id": c, "count": n} for c, n in category_counter.most_common(10)]

    context_counts = {
        "cart": sum(1 for r in requests if r.get("has_cart")),
        "customer": sum(1 for r in requests if r.get("has_customer")),
    }

    cache_hits = sum(1 for r in requests if r.get("cache_hit"))
    cache_misses = total - cache_hits

    return {
        "total_requests": total,
        "avg_response_time_ms": avg_time,
        "items_by_source": dict(source_counter),
        "source_share": source_share,
        "short_results": short,
        "top_categories": top_categories,
        "context_usage": context_counts,
        "cache_stats": {
            "hits": cache_hits,
            "misses": cache_misses,
            "hit_rate": round(cache_hits / total * 100, 1) if total else 0.0,
        },
    }
