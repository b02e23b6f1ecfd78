from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StrategyKind(str, Enum):
    frequently_bought_together = "frequently_bought_together"
    customer_history = "customer_history"
    seasonal = "seasonal"
    popular = "popular"
    random_fallback = "random_fallback"


DEFAULT_SOURCE_ORDER: list[StrategyKind] = [
    StrategyKind.frequently_bought_together,
    StrategyKind.popular,
    StrategyKind.seasonal,
]


class RecommendationRequest(BaseModel):
    limit: int = Field(default=4, description="Items wanted; <= 0 yields an empty result")
    exclude_ids: set[str] = Field(default_factory=set)
    category_id: str | None = None
    customer_id: str | None = None
    cart_item_ids: set[str] = Field(default_factory=set)
    source_order: list[StrategyKind] = Field(
        default_factory=lambda: list(DEFAULT_SOURCE_ORDER),
        description="Strategies to consult, in priority order",
    )

    @field_validator("source_order", mode="before")
    @classmethod
    def _normalize_source(cls, value):
        # A bare strategy name is accepted as a one-element list
        if value is None:
            return list(DEFAULT_SOURCE_ORDER)
        if isinstance(value, (str, StrategyKind)):
            return [value]
        return value

    @field_validator("category_id", "customer_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def excluded_ids(self) -> set[str]:
        """Ids that must never appear in the result."""
        return set(self.exclude_ids) | set(self.cart_item_ids)


class RecommendationItem(BaseModel):
    item_id: str
    name: str
    price: float
    category_id: str | None = None
    active: bool = True
    available: bool = True
    reason: str
    score: float | None = None
    source: StrategyKind


class RecommendationResponse(BaseModel):
    recommendations: list[RecommendationItem]
    cache_hit: bool = False


class CacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    value: list[RecommendationItem]
    expires_at: float


class PeopleAlsoBoughtRequest(BaseModel):
    cart_item_ids: set[str] = Field(default_factory=set)
    limit: int = 4


class PersonalizedRequest(BaseModel):
    customer_id: str | None = Field(
        default=None, description="Defaults to the logged-in guest's customer id"
    )
    limit: int = 4


class InvalidateRequest(BaseModel):
    prefix: str = Field(default="recommendations:", min_length=1)


class InvalidateResponse(BaseModel):
    status: str
    deleted: int


class MenuItemChange(BaseModel):
    action: str = Field(..., pattern="^(create|update|delete|availability)$")


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
