from __future__ import annotations

import random
from collections import Counter
from datetime import date

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from menu_recommender.analytics.store import clear_events
from menu_recommender.app import app
from menu_recommender.recommendations.cache import CacheFront, InMemoryCache
from menu_recommender.recommendations.data_store import DataFrameItemStore
from menu_recommender.recommendations.retrieval import Recommender, get_recommender

SUMMER_DAY = date(2024, 7, 15)


def make_frames() -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """A small catalog where pizza-1 co-occurs with soda-2 four times and salad-3 once."""
    items = pd.DataFrame(
        [
            ("pizza-1", "Margherita Pizza", 12.5, "cat-mains", True, True),
            ("soda-2", "Cola", 2.5, "cat-drinks", True, True),
            ("salad-3", "Caesar Salad", 8.0, "cat-salads", True, True),
            ("burger-4", "Classic Burger", 11.0, "cat-mains", True, True),
            ("fries-5", "French Fries", 4.0, "cat-sides", True, True),
            ("lemonade-6", "Fresh Lemonade", 3.5, "cat-summer", True, True),
            ("cocoa-8", "Hot Cocoa", 3.5, "cat-winter", True, True),
            ("tiramisu-11", "Tiramisu", 6.0, "cat-desserts", True, False),
            ("calzone-12", "Calzone", 13.0, "cat-mains", False, True),
        ],
        columns=["id", "name", "price", "category_id", "active", "available"],
    )
    categories = pd.DataFrame(
        [
            ("cat-mains", "Mains"),
            ("cat-drinks", "Drinks"),
            ("cat-salads", "Salads"),
            ("cat-sides", "Sides"),
            ("cat-summer", "Summer Drinks"),
            ("cat-winter", "Winter Warmers"),
            ("cat-desserts", "Desserts"),
        ],
        columns=["id", "name"],
    )
    order_lines = pd.DataFrame(
        [
            ("o1", "pizza-1", "cust-2", 1),
            ("o1", "soda-2", "cust-2", 1),
            ("o1", "salad-3", "cust-2", 1),
            ("o1", "calzone-12", "cust-2", 1),
            ("o2", "pizza-1", "cust-2", 1),
            ("o2", "soda-2", "cust-2", 2),
            ("o2", "tiramisu-11", "cust-2", 1),
            ("o3", "pizza-1", "cust-3", 1),
            ("o3", "soda-2", "cust-3", 1),
            ("o4", "pizza-1", "cust-3", 1),
            ("o4", "soda-2", "cust-3", 1),
            ("o5", "burger-4", "cust-1", 1),
            ("o5", "fries-5", "cust-1", 1),
            ("o6", "burger-4", "cust-1", 1),
            ("o7", "burger-4", "cust-4", 1),
            ("o7", "fries-5", "cust-4", 1),
            ("o8", "burger-4", "cust-4", 1),
            ("o9", "burger-4", None, 1),
        ],
        columns=["order_id", "item_id", "customer_id", "quantity"],
    )
    return items, categories, order_lines


class CountingStore:
    """Wraps an ItemStore and counts calls per method."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.calls: Counter[str] = Counter()

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if not callable(attr):
            return attr

        def wrapper(*args, **kwargs):
            self.calls[name] += 1
            return attr(*args, **kwargs)

        return wrapper

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())


@pytest.fixture(autouse=True)
def _fresh_events():
    clear_events()
    yield
    clear_events()


@pytest.fixture
def frames():
    return make_frames()


@pytest.fixture
def store(frames) -> CountingStore:
    return CountingStore(DataFrameItemStore(*frames))


@pytest.fixture
def cache() -> CacheFront:
    return CacheFront(InMemoryCache())


@pytest.fixture
def recommender(store, cache) -> Recommender:
    return Recommender(store, cache, rng=random.Random(7), clock=lambda: SUMMER_DAY)


@pytest.fixture
def client(recommender):
    app.dependency_overrides[get_recommender] = lambda: recommender
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
