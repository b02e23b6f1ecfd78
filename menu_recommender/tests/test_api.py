from __future__ import annotations

from unittest.mock import patch

from menu_recommender.recommendations.errors import StoreError


def _login_guest(c):
    c.post("/auth/login", json={"username": "guest", "password": "guest123"})


def _login_admin(c):
    c.post("/auth/login", json={"username": "admin", "password": "admin123"})


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_recommendations_worked_scenario(client):
    _login_guest(client)
    resp = client.post("/recommendations", json={"cart_item_ids": ["pizza-1"], "limit": 3})
    assert resp.status_code == 200
    body = resp.json()
    assert [r["item_id"] for r in body["recommendations"]] == ["soda-2", "salad-3", "burger-4"]
    assert body["recommendations"][2]["reason"] == "Popular choice"
    assert body["cache_hit"] is False


def test_repeat_request_is_served_from_cache(client):
    _login_guest(client)
    payload = {"cart_item_ids": ["pizza-1"], "exclude_ids": ["fries-5", "cocoa-8"], "limit": 3}
    client.post("/recommendations", json=payload)
    payload["exclude_ids"] = ["cocoa-8", "fries-5"]
    resp = client.post("/recommendations", json=payload)
    assert resp.json()["cache_hit"] is True


def test_recommendations_accepts_single_source(client):
    _login_guest(client)
    resp = client.post("/recommendations", json={"limit": 2, "source_order": "popular"})
    assert resp.status_code == 200
    assert [r["source"] for r in resp.json()["recommendations"]] == ["popular", "popular"]


def test_recommendations_rejects_unknown_source(client):
    _login_guest(client)
    resp = client.post("/recommendations", json={"limit": 2, "source_order": ["trending"]})
    assert resp.status_code == 422


def test_zero_limit_is_not_an_error(client):
    _login_guest(client)
    resp = client.post("/recommendations", json={"limit": 0})
    assert resp.status_code == 200
    assert resp.json()["recommendations"] == []


def test_people_also_bought_endpoint(client):
    _login_guest(client)
    resp = client.post(
        "/recommendations/people-also-bought",
        json={"cart_item_ids": ["pizza-1"], "limit": 2},
    )
    assert resp.status_code == 200
    assert [r["item_id"] for r in resp.json()["recommendations"]] == ["soda-2", "salad-3"]


def test_people_also_bought_with_empty_cart_falls_back_to_popular(client):
    _login_guest(client)
    resp = client.post(
        "/recommendations/people-also-bought",
        json={"cart_item_ids": [], "limit": 2},
    )
    assert resp.status_code == 200
    recs = resp.json()["recommendations"]
    assert [r["item_id"] for r in recs] == ["burger-4", "pizza-1"]
    assert {r["reason"] for r in recs} == {"Popular choice"}


def test_personalized_defaults_to_session_customer(client):
    _login_guest(client)
    resp = client.post("/recommendations/personalized", json={"limit": 2})
    assert resp.status_code == 200
    items = resp.json()["recommendations"]
    assert [r["item_id"] for r in items] == ["burger-4", "fries-5"]
    assert items[0]["reason"] == "Based on your previous orders"


def test_personalized_needs_a_customer(client):
    _login_admin(client)
    resp = client.post("/recommendations/personalized", json={"limit": 2})
    assert resp.status_code == 422


def test_backend_outage_maps_to_503(client, store):
    _login_guest(client)
    boom = StoreError("database unreachable")
    with patch.object(store.inner, "item_order_counts", side_effect=boom), \
            patch.object(store.inner, "list_items", side_effect=boom):
        resp = client.post("/recommendations", json={"limit": 3})
    assert resp.status_code == 503


def test_invalidate_endpoint(client):
    _login_guest(client)
    client.post("/recommendations", json={"limit": 2})
    _login_admin(client)
    resp = client.post("/recommendations/invalidate", json={})
    assert resp.status_code == 200
    assert resp.json() == {"status": "invalidated", "deleted": 1}


def test_menu_item_hook_invalidates(client):
    _login_guest(client)
    client.post("/recommendations", json={"limit": 2})
    _login_admin(client)
    resp = client.post("/hooks/menu-items/burger-4", json={"action": "availability"})
    assert resp.status_code == 200
    assert resp.json()["deleted"] == 1


def test_menu_item_hook_rejects_unknown_action(client):
    _login_admin(client)
    resp = client.post("/hooks/menu-items/burger-4", json={"action": "rename"})
    assert resp.status_code == 422


def test_order_hook_invalidates(client):
    _login_admin(client)
    client.post("/recommendations", json={"limit": 2})
    resp = client.post("/hooks/orders/o-42")
    assert resp.status_code == 200
    assert resp.json()["deleted"] == 1


def test_cache_stats_endpoint(client):
    _login_guest(client)
    client.post("/recommendations", json={"limit": 3})
    client.post("/recommendations", json={"limit": 3})
    _login_admin(client)
    resp = client.get("/cache/stats")
    assert resp.status_code == 200
    body = resp.json()
    assert body["hits"] == 1
    assert body["misses"] == 1
    assert "hit_rate" in body
