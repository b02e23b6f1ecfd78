"""
ItemStore backed by a relational database through SQLAlchemy Core.

Every id-list filter goes through ``column.in_()`` / ``column.not_in()`` so
ids travel as bound parameters; nothing is interpolated into SQL text.
"""
from __future__ import annotations

import logging
from typing import Any, Collection

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    MetaData,
    String,
    Table,
    create_engine,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import StoreError

logger = logging.getLogger(__name__)

metadata = MetaData()

categories = Table(
    "categories",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
)

menu_items = Table(
    "menu_items",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("price", Float, nullable=False, default=0.0),
    Column("category_id", String),
    Column("active", Boolean, nullable=False, default=True),
    Column("available", Boolean, nullable=False, default=True),
)

order_lines = Table(
    "order_lines",
    metadata,
    Column("order_id", String, nullable=False, index=True),
    Column("item_id", String, nullable=False, index=True),
    Column("customer_id", String, index=True),
    Column("quantity", Float, default=1),
)


def _record(row: Any) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "name": row.name,
        "price": float(row.price or 0.0),
        "category_id": row.category_id,
        "active": bool(row.active),
        "available": bool(row.available),
    }


class SqlItemStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> SqlItemStore:
        return cls(create_engine(url, pool_pre_ping=True, **engine_kwargs))

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def _fetch(self, stmt) -> list[Any]:
        try:
            with self.engine.connect() as conn:
                return list(conn.execute(stmt))
        except SQLAlchemyError as exc:
            raise StoreError(f"Item store query failed: {exc.__class__.__name__}") from exc

    def _eligible_items(self, exclude: Collection[str]):
        stmt = select(menu_items).where(
            menu_items.c.active.is_(True),
            menu_items.c.available.is_(True),
        )
        if exclude:
            stmt = stmt.where(menu_items.c.id.not_in(list(exclude)))
        return stmt

    def list_items(
        self,
        category_id: str | None = None,
        exclude: Collection[str] = (),
        category_name_contains: str | None = None,
    ) -> list[dict[str, Any]]:
        stmt = self._eligible_items(exclude)
        if category_id:
            stmt = stmt.where(menu_items.c.category_id == category_id)
        if category_name_contains:
            matching = select(categories.c.id).where(
                categories.c.name.icontains(category_name_contains, autoescape=True)
            )
            stmt = stmt.where(menu_items.c.category_id.in_(matching))
        stmt = stmt.order_by(menu_items.c.name, menu_items.c.id)
        return [_record(row) for row in self._fetch(stmt)]

    def get_items(self, item_ids: Collection[str]) -> dict[str, dict[str, Any]]:
        if not item_ids:
            return {}
        stmt = self._eligible_items(()).where(menu_items.c.id.in_(list(item_ids)))
        return {str(row.id): _record(row) for row in self._fetch(stmt)}

    def _counts(self, *criteria, exclude: Collection[str] = ()) -> list[tuple[str, int]]:
        n = func.count().label("n")
        stmt = select(order_lines.c.item_id, n).where(*criteria)
        if exclude:
            stmt = stmt.where(order_lines.c.item_id.not_in(list(exclude)))
        stmt = stmt.group_by(order_lines.c.item_id).order_by(n.desc(), order_lines.c.item_id)
        return [(str(row.item_id), int(row.n)) for row in self._fetch(stmt)]

    def co_occurrence_counts(
        self, item_ids: Collection[str], exclude: Collection[str] = (),
    ) -> list[tuple[str, int]]:
        anchors = list(item_ids)
        if not anchors:
            return []
        anchor_orders = select(order_lines.c.order_id).where(order_lines.c.item_id.in_(anchors))
        return self._counts(
            order_lines.c.order_id.in_(anchor_orders),
            order_lines.c.item_id.not_in(anchors),
            exclude=exclude,
        )

    def customer_item_counts(
        self, customer_id: str, exclude: Collection[str] = (),
    ) -> list[tuple[str, int]]:
        return self._counts(order_lines.c.customer_id == customer_id, exclude=exclude)

    def item_order_counts(
        self, category_id: str | None = None, exclude: Collection[str] = (),
    ) -> list[tuple[str, int]]:
        criteria = []
        if category_id:
            in_category = select(menu_items.c.id).where(menu_items.c.category_id == category_id)
            criteria.append(order_lines.c.item_id.in_(in_category))
        return self._counts(*criteria, exclude=exclude)
