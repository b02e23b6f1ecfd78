from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List

import pandas as pd

from ..recommendations.data_store import CATEGORIES_CSV, ITEMS_CSV, ORDER_LINES_CSV
from .config import DEFAULT_INGESTION_CONFIG, IngestionConfig

logger = logging.getLogger(__name__)

CANONICAL_ITEM_COLUMNS: List[str] = [
    "id",
    "name",
    "price",
    "category_id",
    "active",
    "available",
]
CANONICAL_CATEGORY_COLUMNS: List[str] = ["id", "name"]
CANONICAL_ORDER_LINE_COLUMNS: List[str] = [
    "order_id",
    "item_id",
    "customer_id",
    "quantity",
]

_UNAVAILABLE = {"sold_out", "unavailable", "out_of_stock", "false", "0", "no", "n"}
_INACTIVE = {"false", "0", "no", "n", "archived", "deleted", "inactive"}


def _first_present(df: pd.DataFrame, columns: List[str]) -> str | None:
    for col in columns:
        if col in df.columns:
            return col
    return None


def _normalize_flag(value: Any, falsy: set[str]) -> bool:
    """Missing means yes; only an explicit negative marker turns a flag off."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return True
    if isinstance(value, bool):
        return value
    return str(value).strip().lower().replace("-", "_").replace(" ", "_") not in falsy


def _normalize_availability(value: Any) -> bool:
    return _normalize_flag(value, _UNAVAILABLE)


def _normalize_active(value: Any) -> bool:
    return _normalize_flag(value, _INACTIVE)


def _clean_id(series: pd.Series) -> pd.Series:
    return series.map(lambda v: None if pd.isna(v) or not str(v).strip() else str(v).strip())


def normalize_items(raw: pd.DataFrame) -> pd.DataFrame:
    col_id = _first_present(raw, ["id", "menu_item_id", "item_id"])
    col_name = _first_present(raw, ["name", "title", "item_name"])
    col_price = _first_present(raw, ["price", "unit_price", "base_price"])
    col_category = _first_present(raw, ["category_id", "categoryId", "category"])
    col_available = _first_present(raw, ["available", "availability", "is_available", "isAvailable"])
    col_active = _first_present(raw, ["active", "is_active", "isActive", "status"])

    items = pd.DataFrame()
    items["id"] = _clean_id(raw[col_id]) if col_id else None
    items["name"] = raw[col_name].fillna("").astype(str) if col_name else ""
    items["price"] = (
        pd.to_numeric(raw[col_price], errors="coerce").fillna(0.0) if col_price else 0.0
    )
    items["category_id"] = _clean_id(raw[col_category]) if col_category else None
    items["active"] = raw[col_active].map(_normalize_active) if col_active else True
    items["available"] = (
        raw[col_available].map(_normalize_availability) if col_available else True
    )

    before = len(items)
    items = items.dropna(subset=["id"]).drop_duplicates(subset=["id"], keep="first")
    if len(items) < before:
        logger.warning("Dropped %d menu item rows without a usable id", before - len(items))
    return items[CANONICAL_ITEM_COLUMNS]


def normalize_categories(raw: pd.DataFrame) -> pd.DataFrame:
    col_id = _first_present(raw, ["id", "category_id"])
    col_name = _first_present(raw, ["name", "title", "category_name"])

    categories = pd.DataFrame()
    categories["id"] = _clean_id(raw[col_id]) if col_id else None
    categories["name"] = raw[col_name].fillna("").astype(str) if col_name else ""
    categories = categories.dropna(subset=["id"]).drop_duplicates(subset=["id"])
    return categories[CANONICAL_CATEGORY_COLUMNS]


def normalize_order_lines(raw: pd.DataFrame) -> pd.DataFrame:
    col_order = _first_present(raw, ["order_id", "orderId"])
    col_item = _first_present(raw, ["item_id", "menu_item_id", "menuItemId", "product_id"])
    col_customer = _first_present(
        raw, ["customer_id", "customerId", "user_id", "guest_id", "stay_id"]
    )
    col_quantity = _first_present(raw, ["quantity", "qty"])

    lines = pd.DataFrame()
    lines["order_id"] = _clean_id(raw[col_order]) if col_order else None
    lines["item_id"] = _clean_id(raw[col_item]) if col_item else None
    lines["customer_id"] = _clean_id(raw[col_customer]) if col_customer else None
    lines["quantity"] = (
        pd.to_numeric(raw[col_quantity], errors="coerce").fillna(1).astype(int)
        if col_quantity
        else 1
    )
    lines = lines.dropna(subset=["order_id", "item_id"])
    return lines[CANONICAL_ORDER_LINE_COLUMNS]


def run_ingestion(config: IngestionConfig = DEFAULT_INGESTION_CONFIG) -> Path:
    """
    Normalize raw platform exports into the canonical catalog.

    Steps:
    - Read the raw menu item, category and order-line exports.
    - Map raw fields into the canonical schemas.
    - Persist cleaned CSVs into ``processed_data_dir`` and return it.
    """

    config.processed_data_dir.mkdir(parents=True, exist_ok=True)

    items = normalize_items(pd.read_csv(config.raw_items_path, dtype=str))
    categories = normalize_categories(pd.read_csv(config.raw_categories_path, dtype=str))
    lines = normalize_order_lines(pd.read_csv(config.raw_order_lines_path, dtype=str))

    out_dir = config.processed_data_dir
    items.to_csv(out_dir / ITEMS_CSV, index=False)
    categories.to_csv(out_dir / CATEGORIES_CSV, index=False)
    lines.to_csv(out_dir / ORDER_LINES_CSV, index=False)
    logger.info(
        "Ingested %d items, %d categories, %d order lines into %s",
        len(items), len(categories), len(lines), out_dir,
    )
    return out_dir


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    path = run_ingestion()
    print(f"Ingestion complete. Catalog saved to: {path}")
