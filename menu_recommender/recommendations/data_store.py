from __future__ import annotations

from pathlib import Path
from typing import Any, Collection, Protocol

import pandas as pd

from .errors import StoreError

ITEMS_CSV = "items.csv"
CATEGORIES_CSV = "categories.csv"
ORDER_LINES_CSV = "order_lines.csv"

_TRUTHY = {"true", "1", "yes", "y", "t", "available"}


class ItemStore(Protocol):
    """Read-only view of the menu catalog and its order history."""

    def list_items(
        self,
        category_id: str | None = None,
        exclude: Collection[str] = (),
        category_name_contains: str | None = None,
    ) -> list[dict[str, Any]]: ...

    def get_items(self, item_ids: Collection[str]) -> dict[str, dict[str, Any]]: ...

    def co_occurrence_counts(
        self, item_ids: Collection[str], exclude: Collection[str] = (),
    ) -> list[tuple[str, int]]: ...

    def customer_item_counts(
        self, customer_id: str, exclude: Collection[str] = (),
    ) -> list[tuple[str, int]]: ...

    def item_order_counts(
        self, category_id: str | None = None, exclude: Collection[str] = (),
    ) -> list[tuple[str, int]]: ...


def _to_bool(series: pd.Series) -> pd.Series:
    if series.dtype == bool:
        return series
    return series.fillna("").astype(str).str.strip().str.lower().isin(_TRUTHY)


def _require_columns(df: pd.DataFrame, required: tuple[str, ...], table: str) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise StoreError(f"{table} is missing required columns: {', '.join(missing)}")


def _prepare_items(df: pd.DataFrame) -> pd.DataFrame:
    _require_columns(df, ("id", "name", "price"), "items")
    df = df.copy()
    df["id"] = df["id"].astype(str)
    if "category_id" not in df.columns:
        df["category_id"] = None
    df["category_id"] = df["category_id"].map(lambda v: None if pd.isna(v) else str(v))
    df["price"] = pd.to_numeric(df["price"], errors="coerce").fillna(0.0)
    df["active"] = _to_bool(df["active"]) if "active" in df.columns else True
    df["available"] = _to_bool(df["available"]) if "available" in df.columns else True
    return df.reset_index(drop=True)


def _prepare_categories(df: pd.DataFrame) -> pd.DataFrame:
    _require_columns(df, ("id", "name"), "categories")
    df = df.copy()
    df["id"] = df["id"].astype(str)
    df["name_lower"] = df["name"].fillna("").astype(str).str.lower()
    return df


def _prepare_order_lines(df: pd.DataFrame) -> pd.DataFrame:
    _require_columns(df, ("order_id", "item_id"), "order_lines")
    df = df.copy()
    df["order_id"] = df["order_id"].astype(str)
    df["item_id"] = df["item_id"].astype(str)
    if "customer_id" not in df.columns:
        df["customer_id"] = None
    df["customer_id"] = df["customer_id"].map(lambda v: None if pd.isna(v) else str(v))
    return df


def _ranked(counts: pd.Series) -> list[tuple[str, int]]:
    """Sort a per-item count series by count desc, then item id asc."""
    if counts.empty:
        return []
    frame = counts.rename("count").rename_axis("item_id").reset_index()
    frame = frame.sort_values(["count", "item_id"], ascending=[False, True], kind="mergesort")
    return [(str(i), int(c)) for i, c in zip(frame["item_id"], frame["count"])]


def _record(row: pd.Series) -> dict[str, Any]:
    return {
        "id": row["id"],
        "name": str(row["name"]),
        "price": float(row["price"]),
        "category_id": row["category_id"],
        "active": bool(row["active"]),
        "available": bool(row["available"]),
    }


class DataFrameItemStore:
    """ItemStore over three pandas DataFrames.

    Built either from in-memory frames or lazily from a directory of CSVs
    (``items.csv``, ``categories.csv``, ``order_lines.csv``). Loading failures
    surface as ``StoreError`` on the first query and are retried on the next.
    """

    def __init__(
        self,
        items: pd.DataFrame | None = None,
        categories: pd.DataFrame | None = None,
        order_lines: pd.DataFrame | None = None,
        data_dir: Path | None = None,
    ) -> None:
        self._data_dir = data_dir
        self._items: pd.DataFrame | None = None
        self._categories: pd.DataFrame | None = None
        self._lines: pd.DataFrame | None = None
        if items is not None:
            self._set_frames(
                items,
                categories if categories is not None else pd.DataFrame(columns=["id", "name"]),
                order_lines if order_lines is not None else pd.DataFrame(
                    columns=["order_id", "item_id", "customer_id", "quantity"]
                ),
            )

    @classmethod
    def from_dir(cls, data_dir: Path) -> DataFrameItemStore:
        return cls(data_dir=Path(data_dir))

    def _set_frames(self, items: pd.DataFrame, categories: pd.DataFrame, lines: pd.DataFrame) -> None:
        prepared = (_prepare_items(items), _prepare_categories(categories), _prepare_order_lines(lines))
        self._items, self._categories, self._lines = prepared

    def _load(self) -> None:
        if self._data_dir is None:
            raise StoreError("DataFrameItemStore has neither frames nor a data directory")
        try:
            items = pd.read_csv(self._data_dir / ITEMS_CSV, dtype={"id": str, "category_id": str})
            categories = pd.read_csv(self._data_dir / CATEGORIES_CSV, dtype={"id": str})
            lines = pd.read_csv(
                self._data_dir / ORDER_LINES_CSV,
                dtype={"order_id": str, "item_id": str, "customer_id": str},
            )
            self._set_frames(items, categories, lines)
        except (OSError, KeyError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise StoreError(f"Could not load catalog from {self._data_dir}") from exc

    def _frames(self) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
        if self._items is None:
            self._load()
        return self._items, self._categories, self._lines

    def _eligible(self, exclude: Collection[str]) -> pd.DataFrame:
        items, _, _ = self._frames()
        mask = items["active"] & items["available"] & ~items["id"].isin(list(exclude))
        return items.loc[mask]

    def list_items(
        self,
        category_id: str | None = None,
        exclude: Collection[str] = (),
        category_name_contains: str | None = None,
    ) -> list[dict[str, Any]]:
        df = self._eligible(exclude)
        if category_id:
            df = df[df["category_id"] == category_id]
        if category_name_contains:
            _, categories, _ = self._frames()
            needle = category_name_contains.lower()
            matching = categories.loc[
                categories["name_lower"].str.contains(needle, regex=False), "id"
            ]
            df = df[df["category_id"].isin(matching.tolist())]
        return [_record(row) for _, row in df.iterrows()]

    def get_items(self, item_ids: Collection[str]) -> dict[str, dict[str, Any]]:
        df = self._eligible(())
        df = df[df["id"].isin(list(item_ids))]
        return {row["id"]: _record(row) for _, row in df.iterrows()}

    def co_occurrence_counts(
        self, item_ids: Collection[str], exclude: Collection[str] = (),
    ) -> list[tuple[str, int]]:
        _, _, lines = self._frames()
        anchors = list(item_ids)
        orders = lines.loc[lines["item_id"].isin(anchors), "order_id"].unique()
        together = lines[
            lines["order_id"].isin(orders)
            & ~lines["item_id"].isin(anchors)
            & ~lines["item_id"].isin(list(exclude))
        ]
        return _ranked(together.groupby("item_id").size())

    def customer_item_counts(
        self, customer_id: str, exclude: Collection[str] = (),
    ) -> list[tuple[str, int]]:
        _, _, lines = self._frames()
        mine = lines[(lines["customer_id"] == customer_id) & ~lines["item_id"].isin(list(exclude))]
        return _ranked(mine.groupby("item_id").size())

    def item_order_counts(
        self, category_id: str | None = None, exclude: Collection[str] = (),
    ) -> list[tuple[str, int]]:
        items, _, lines = self._frames()
        df = lines[~lines["item_id"].isin(list(exclude))]
        if category_id:
            in_category = items.loc[items["category_id"] == category_id, "id"]
            df = df[df["item_id"].isin(in_category.tolist())]
        return _ranked(df.groupby("item_id").size())
