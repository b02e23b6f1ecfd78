from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from menu_recommender.config import RecommenderConfig
from menu_recommender.recommendations.data_store import DataFrameItemStore
from menu_recommender.recommendations.errors import BackendUnavailableError, StoreError
from menu_recommender.recommendations.models import RecommendationRequest
from menu_recommender.recommendations.retrieval import build_recommender

_BUNDLED = Path(__file__).resolve().parent.parent / "data"


def test_missing_catalog_raises_store_error(tmp_path: Path):
    store = DataFrameItemStore.from_dir(tmp_path / "nowhere")
    with pytest.raises(StoreError):
        store.list_items()


def test_catalog_loads_once_files_appear(tmp_path: Path):
    store = DataFrameItemStore.from_dir(tmp_path)
    with pytest.raises(StoreError):
        store.item_order_counts()

    pd.DataFrame({
        "id": ["a", "b"], "name": ["A", "B"], "price": [1, 2],
        "category_id": ["c", "c"], "active": ["yes", "no"], "available": ["true", "true"],
    }).to_csv(tmp_path / "items.csv", index=False)
    pd.DataFrame({"id": ["c"], "name": ["Mains"]}).to_csv(tmp_path / "categories.csv", index=False)
    pd.DataFrame({
        "order_id": ["1"], "item_id": ["a"], "customer_id": [""], "quantity": [1],
    }).to_csv(tmp_path / "order_lines.csv", index=False)

    assert [r["id"] for r in store.list_items()] == ["a"]
    assert store.item_order_counts() == [("a", 1)]


def test_get_items_hides_ineligible(store):
    found = store.get_items(["pizza-1", "tiramisu-11", "calzone-12", "missing"])
    assert list(found) == ["pizza-1"]
    assert found["pizza-1"]["price"] == 12.5


def test_list_items_keeps_listing_order(store):
    ids = [r["id"] for r in store.list_items(exclude={"soda-2"})]
    assert ids == ["pizza-1", "salad-3", "burger-4", "fries-5", "lemonade-6", "cocoa-8"]


def test_bundled_catalog_serves_worked_scenario():
    config = RecommenderConfig(redis_url="", database_url="", data_dir=_BUNDLED)
    rec = build_recommender(config)
    result = rec.compute(RecommendationRequest(cart_item_ids=["pizza-1"], limit=3))
    assert [i.item_id for i in result][:2] == ["soda-2", "salad-3"]
    assert result[2].reason == "Popular choice"


def test_catalog_without_name_column_is_a_store_error(tmp_path: Path):
    pd.DataFrame({"id": ["a"], "price": [1]}).to_csv(tmp_path / "items.csv", index=False)
    pd.DataFrame({"id": ["c"], "name": ["Mains"]}).to_csv(tmp_path / "categories.csv", index=False)
    pd.DataFrame({"order_id": ["1"], "item_id": ["a"]}).to_csv(
        tmp_path / "order_lines.csv", index=False
    )
    store = DataFrameItemStore.from_dir(tmp_path)
    with pytest.raises(StoreError, match="name"):
        store.list_items()
    with pytest.raises(StoreError):
        store.item_order_counts()


def test_incomplete_catalog_is_skipped_by_the_pipeline(tmp_path: Path):
    pd.DataFrame({"id": ["a"], "price": [1]}).to_csv(tmp_path / "items.csv", index=False)
    pd.DataFrame({"id": ["c"], "name": ["Mains"]}).to_csv(tmp_path / "categories.csv", index=False)
    pd.DataFrame({"order_id": ["1"], "item_id": ["a"]}).to_csv(
        tmp_path / "order_lines.csv", index=False
    )
    config = RecommenderConfig(redis_url="", database_url="", data_dir=tmp_path)
    rec = build_recommender(config)
    with pytest.raises(BackendUnavailableError):
        rec.compute(RecommendationRequest(limit=2))
