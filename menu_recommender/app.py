from __future__ import annotations

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events
from .auth.dependencies import require_admin, require_user
from .auth.users import authenticate
from .config import DEFAULT_CONFIG
from .recommendations.errors import BackendUnavailableError
from .recommendations.models import (
    InvalidateRequest,
    InvalidateResponse,
    LoginRequest,
    MenuItemChange,
    PeopleAlsoBoughtRequest,
    PersonalizedRequest,
    RecommendationRequest,
    RecommendationResponse,
)
from .recommendations.retrieval import (
    PEOPLE_ALSO_BOUGHT_SOURCES,
    PERSONALIZED_SOURCES,
    Recommender,
    RequestContext,
    get_recommender,
)

app = FastAPI(title="Menu Recommendation API", version="1.0.0")
app.add_middleware(SessionMiddleware, secret_key=DEFAULT_CONFIG.session_secret)


@app.exception_handler(BackendUnavailableError)
async def backend_unavailable(request: Request, exc: BackendUnavailableError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": "Recommendations are temporarily unavailable"})


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# ── Auth endpoints ───────────────────────────────────────────────────────


@app.post("/auth/login")
def login(body: LoginRequest, request: Request) -> dict:
    user = authenticate(body.username, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    request.session["user"] = user
    return {"status": "ok", "user": user}


@app.post("/auth/logout")
def logout(request: Request) -> dict:
    request.session.clear()
    return {"status": "logged_out"}


@app.get("/auth/me")
def auth_me(user: dict = Depends(require_user)) -> dict:
    return user


# ── Guest endpoints ──────────────────────────────────────────────────────


@app.post("/recommendations", response_model=RecommendationResponse)
def recommendations(
    body: RecommendationRequest,
    user: dict = Depends(require_user),
    recommender: Recommender = Depends(get_recommender),
) -> RecommendationResponse:
    return recommender.compute_response(body, RequestContext())


@app.post("/recommendations/people-also-bought", response_model=RecommendationResponse)
def people_also_bought(
    body: PeopleAlsoBoughtRequest,
    user: dict = Depends(require_user),
    recommender: Recommender = Depends(get_recommender),
) -> RecommendationResponse:
    rec_request = RecommendationRequest(
        cart_item_ids=body.cart_item_ids,
        limit=body.limit,
        source_order=PEOPLE_ALSO_BOUGHT_SOURCES,
    )
    return recommender.compute_response(rec_request, RequestContext())


@app.post("/recommendations/personalized", response_model=RecommendationResponse)
def personalized(
    body: PersonalizedRequest,
    user: dict = Depends(require_user),
    recommender: Recommender = Depends(get_recommender),
) -> RecommendationResponse:
    customer_id = body.customer_id or user.get("customer_id")
    if not customer_id:
        raise HTTPException(status_code=422, detail="customer_id is required")
    rec_request = RecommendationRequest(
        customer_id=customer_id,
        limit=body.limit,
        source_order=PERSONALIZED_SOURCES,
    )
    return recommender.compute_response(rec_request, RequestContext())


# ── Admin endpoints ──────────────────────────────────────────────────────


@app.post("/recommendations/invalidate", response_model=InvalidateResponse)
def invalidate(
    body: InvalidateRequest,
    user: dict = Depends(require_admin),
    recommender: Recommender = Depends(get_recommender),
) -> InvalidateResponse:
    return InvalidateResponse(status="invalidated", deleted=recommender.invalidate(body.prefix))


@app.post("/hooks/menu-items/{item_id}", response_model=InvalidateResponse)
def menu_item_changed(
    item_id: str,
    body: MenuItemChange,
    user: dict = Depends(require_admin),
    recommender: Recommender = Depends(get_recommender),
) -> InvalidateResponse:
    deleted = recommender.on_menu_item_changed(item_id, body.action)
    return InvalidateResponse(status="invalidated", deleted=deleted)


@app.post("/hooks/orders/{order_id}", response_model=InvalidateResponse)
def order_placed(
    order_id: str,
    user: dict = Depends(require_admin),
    recommender: Recommender = Depends(get_recommender),
) -> InvalidateResponse:
    deleted = recommender.on_order_placed(order_id)
    return InvalidateResponse(status="invalidated", deleted=deleted)


@app.get("/cache/stats")
def cache_stats(
    user: dict = Depends(require_admin),
    recommender: Recommender = Depends(get_recommender),
) -> dict:
    return recommender.cache.stats()


@app.get("/analytics")
def analytics(user: dict = Depends(require_admin)) -> dict:
    return compute_analytics(get_events())
