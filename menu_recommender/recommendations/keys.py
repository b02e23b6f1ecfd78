"""
Request canonicalisation and cache key derivation.

Two requests that differ only in the insertion order of their id sets must
produce the same key, so every set is sorted before it is serialised. The
canonical form is JSON, so ids containing separators cannot collide.
"""
from __future__ import annotations

import hashlib
import json

from .models import RecommendationRequest

DEFAULT_PREFIX = "recommendations:"


def canonicalize(request: RecommendationRequest) -> str:
    return json.dumps(
        {
            "excluded": sorted(request.excluded_ids()),
            "cart": sorted(request.cart_item_ids),
            "limit": request.limit,
            "category_id": request.category_id,
            "customer_id": request.customer_id,
            "sources": [kind.value for kind in request.source_order],
        },
        sort_keys=True,
    )


def make_cache_key(request: RecommendationRequest, prefix: str = DEFAULT_PREFIX) -> str:
    digest = hashlib.sha256(canonicalize(request).encode()).hexdigest()[:16]
    return f"{prefix}{digest}"


def is_degenerate(request: RecommendationRequest) -> bool:
    """A request that can never yield items and must not reach cache or store."""
    return request.limit <= 0
