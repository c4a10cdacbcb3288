"""Integration tests for the HTTP API via httpx AsyncClient."""

import json
from datetime import datetime

from app.core.config import EnvironmentMode
from app.models import OrderStatus


def order_payload(restaurant, **overrides):
    margherita = restaurant.menu_items[0]
    payload = {
        "restaurant_id": restaurant.id,
        "customer_name": "Jane Smith",
        "delivery_address": {
            "street": "350 Fifth Avenue",
            "city": "New York",
            "state": "NY",
            "zip_code": "10001",
        },
        "items": [{"menu_item_id": margherita.id, "quantity": 2}],
        "payment_method": "cash",
        "payment_id": "pay_12345678",
    }
    payload.update(overrides)
    return payload


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["environment"] == "development"


async def test_place_order(client, make_restaurant, make_order, export_task):
    restaurant = await make_restaurant(delivery_time_minutes=30, delivery_fee=4.0)
    await make_order(restaurant, status=OrderStatus.PENDING)
    await make_order(restaurant, status=OrderStatus.DELIVERED)

    response = await client.post("/api/orders", json=order_payload(restaurant))

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["order"]["status"] == "pending"
    assert body["order"]["restaurant_id"] == restaurant.id
    assert body["order"]["subtotal"] == 25.0
    assert body["order"]["delivery_fee"] == 4.0
    assert body["estimated_minutes"] == 32.0
    assert body["estimated_delivery"] == "09:32 AM"
    assert body["order"]["estimated_minutes"] == 32.0

    assert len(export_task.payloads) == 1
    exported = export_task.payloads[0]
    assert exported["order_id"] == body["order"]["id"]
    assert exported["estimated_minutes"] == 32.0


async def test_place_order_at_peak(client, clock, make_restaurant, make_order):
    clock.now = datetime(2024, 5, 1, 12, 30).astimezone()
    restaurant = await make_restaurant(delivery_time_minutes=30)
    for _ in range(3):
        await make_order(restaurant, status=OrderStatus.PREPARING)

    response = await client.post("/api/orders", json=order_payload(restaurant))

    assert response.status_code == 201
    assert response.json()["estimated_minutes"] == 54.0
    assert response.json()["estimated_delivery"] == "01:24 PM"


async def test_order_lines_are_priced_from_menu(client, make_restaurant):
    restaurant = await make_restaurant(delivery_fee=5.0)
    margherita, tiramisu = restaurant.menu_items
    payload = order_payload(
        restaurant,
        items=[
            {"menu_item_id": margherita.id, "quantity": 2},
            {"menu_item_id": tiramisu.id, "quantity": 1},
        ],
    )

    response = await client.post("/api/orders", json=payload)

    assert response.status_code == 201
    order = response.json()["order"]
    assert order["subtotal"] == 32.0
    assert order["tax"] == 2.56
    assert order["total_amount"] == 39.56
    assert json.loads(order["items"]) == [
        {"menu_item_id": margherita.id, "name": "Margherita", "unit_price": 12.5, "quantity": 2},
        {"menu_item_id": tiramisu.id, "name": "Tiramisu", "unit_price": 7.0, "quantity": 1},
    ]


async def test_items_must_reference_the_menu(client, make_restaurant):
    restaurant = await make_restaurant()
    payload = order_payload(
        restaurant,
        items=[{"name": "Anything I like", "quantity": 99, "unit_price": 0.01}],
    )

    response = await client.post("/api/orders", json=payload)

    assert response.status_code == 422


async def test_place_order_unknown_menu_item(client, make_restaurant, export_task):
    restaurant = await make_restaurant()
    other = await make_restaurant(name="Sakura")
    foreign_item = other.menu_items[0]

    missing = await client.post(
        "/api/orders",
        json=order_payload(restaurant, items=[{"menu_item_id": 9999, "quantity": 1}]),
    )
    foreign = await client.post(
        "/api/orders",
        json=order_payload(restaurant, items=[{"menu_item_id": foreign_item.id, "quantity": 1}]),
    )

    assert missing.status_code == 400
    assert foreign.status_code == 400
    assert export_task.payloads == []
    assert (await client.get("/api/orders")).json()["total"] == 0


async def test_place_order_unavailable_item(client, make_restaurant):
    restaurant = await make_restaurant()
    tiramisu = restaurant.menu_items[1]
    await client.patch(
        "/api/admin/menu-items",
        json={"restaurant_id": restaurant.id, "menu_item_id": tiramisu.id, "available": False},
    )

    response = await client.post(
        "/api/orders",
        json=order_payload(restaurant, items=[{"menu_item_id": tiramisu.id, "quantity": 1}]),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Menu item 'Tiramisu' is not available"
    assert (await client.get("/api/orders")).json()["total"] == 0


async def test_place_order_unknown_restaurant(client, make_restaurant, export_task):
    restaurant = await make_restaurant()

    response = await client.post(
        "/api/orders", json=order_payload(restaurant, restaurant_id=999)
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Restaurant not found"
    assert export_task.payloads == []

    listing = await client.get("/api/orders")
    assert listing.json()["total"] == 0


async def test_place_order_validation(client, make_restaurant):
    restaurant = await make_restaurant()
    payload = order_payload(restaurant, items=[])
    payload["delivery_address"]["zip_code"] = "ABCDE"

    response = await client.post("/api/orders", json=payload)

    assert response.status_code == 422


async def test_estimate_preview(client, make_restaurant, make_order):
    restaurant = await make_restaurant(delivery_time_minutes=20)
    for _ in range(2):
        await make_order(restaurant, status=OrderStatus.PREPARING)

    response = await client.get(f"/api/restaurants/{restaurant.id}/estimate")

    assert response.status_code == 200
    body = response.json()
    assert body["active_orders"] == 2
    assert body["base_minutes"] == 20
    assert body["estimated_minutes"] == 24.0
    assert body["is_peak_hour"] is False


async def test_estimate_preview_at_peak(client, clock, make_restaurant, make_order):
    clock.now = datetime(2024, 5, 1, 18, 0).astimezone()
    restaurant = await make_restaurant(delivery_time_minutes=20)
    for _ in range(2):
        await make_order(restaurant, status=OrderStatus.PENDING)

    body = (await client.get(f"/api/restaurants/{restaurant.id}/estimate")).json()

    assert body["estimated_minutes"] == 36.0
    assert body["is_peak_hour"] is True


async def test_estimate_preview_unknown_restaurant(client):
    response = await client.get("/api/restaurants/999/estimate")
    assert response.status_code == 404


async def test_admin_status_update_keeps_estimate(client, clock, make_restaurant):
    restaurant = await make_restaurant()
    created = (await client.post("/api/orders", json=order_payload(restaurant))).json()
    order_id = created["order"]["id"]
    clock.now = datetime(2024, 5, 1, 12, 0).astimezone()

    response = await client.patch(
        f"/api/admin/orders/{order_id}", json={"status": "out_for_delivery"}
    )

    assert response.status_code == 200
    order = response.json()["order"]
    assert order["status"] == "out_for_delivery"
    assert order["estimated_minutes"] == 30.0
    assert order["estimated_delivery_time"] == created["order"]["estimated_delivery_time"]


async def test_admin_status_update_invalid(client, make_restaurant, make_order):
    restaurant = await make_restaurant()
    order = await make_order(restaurant)

    bad_status = await client.patch(f"/api/admin/orders/{order.id}", json={"status": "lost"})
    missing = await client.patch("/api/admin/orders/999", json={"status": "delivered"})

    assert bad_status.status_code == 422
    assert missing.status_code == 404


async def test_admin_orders_filter(client, make_restaurant, make_order):
    restaurant = await make_restaurant()
    await make_order(restaurant, status=OrderStatus.PENDING)
    await make_order(restaurant, status=OrderStatus.CANCELLED)

    response = await client.get("/api/admin/orders", params={"status": "cancelled"})
    invalid = await client.get("/api/admin/orders", params={"status": "unknown"})

    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["orders"][0]["status"] == "cancelled"
    assert invalid.status_code == 400


async def test_get_order(client, make_restaurant, make_order):
    restaurant = await make_restaurant()
    order = await make_order(restaurant)

    found = await client.get(f"/api/orders/{order.id}")
    missing = await client.get("/api/orders/999")

    assert found.status_code == 200
    assert found.json()["customer_name"] == "Jane Smith"
    assert missing.status_code == 404


async def test_list_restaurants(client, make_restaurant):
    await make_restaurant(name="Luigi's", cuisine=["Italian"], rating=4.0)
    await make_restaurant(name="Sakura", cuisine=["Japanese"], rating=4.9, featured=True)
    await make_restaurant(name="Taqueria", cuisine=["Mexican"], rating=3.5)

    response = await client.get(
        "/api/restaurants",
        params=[("cuisine", "Italian"), ("cuisine", "Mexican"), ("sort", "-rating")],
    )

    assert response.status_code == 200
    body = response.json()
    assert [r["name"] for r in body["restaurants"]] == ["Luigi's", "Taqueria"]
    assert body["total_count"] == 2
    assert body["pagination"] == {
        "current_page": 1,
        "total_pages": 1,
        "total_count": 2,
        "has_more": False,
    }


async def test_list_restaurants_bad_sort(client):
    response = await client.get("/api/restaurants", params={"sort": "-secret"})
    assert response.status_code == 400


async def test_get_restaurant(client, make_restaurant):
    restaurant = await make_restaurant(cuisine=["Thai", "Vietnamese"])

    found = await client.get(f"/api/restaurants/{restaurant.id}")
    missing = await client.get("/api/restaurants/999")

    assert found.status_code == 200
    assert found.json()["cuisine"] == ["Thai", "Vietnamese"]
    assert found.json()["days_open"] == [0, 1, 2, 3, 4, 5, 6]
    assert [item["name"] for item in found.json()["menu"]] == ["Margherita", "Tiramisu"]
    assert missing.status_code == 404


async def test_restaurant_detail_hides_unavailable_items(client, make_restaurant):
    restaurant = await make_restaurant(
        menu=[
            {"name": "Lasagna", "description": "Baked", "price": 15.0, "category": "Main Course"},
            {
                "name": "Seasonal Soup",
                "description": "Ask the chef",
                "price": 6.0,
                "category": "Specials",
                "available": False,
            },
        ]
    )

    menu = (await client.get(f"/api/restaurants/{restaurant.id}")).json()["menu"]
    listing = (await client.get("/api/restaurants")).json()["restaurants"][0]

    assert [item["name"] for item in menu] == ["Lasagna"]
    assert "menu" not in listing


async def test_admin_list_menu_items(client, make_restaurant):
    restaurant = await make_restaurant()
    tiramisu = restaurant.menu_items[1]
    await client.patch(
        "/api/admin/menu-items",
        json={"restaurant_id": restaurant.id, "menu_item_id": tiramisu.id, "available": False},
    )

    response = await client.get("/api/admin/menu-items", params={"restaurant_id": restaurant.id})
    missing = await client.get("/api/admin/menu-items", params={"restaurant_id": 999})

    assert response.status_code == 200
    items = response.json()["menu_items"]
    assert [(i["name"], i["available"]) for i in items] == [
        ("Margherita", True),
        ("Tiramisu", False),
    ]
    assert items[1]["allergens"] == ["Dairy", "Gluten"]
    assert missing.status_code == 404


async def test_admin_toggle_menu_item(client, make_restaurant):
    restaurant = await make_restaurant()
    margherita = restaurant.menu_items[0]

    disabled = await client.patch(
        "/api/admin/menu-items",
        json={"restaurant_id": restaurant.id, "menu_item_id": margherita.id, "available": False},
    )
    enabled = await client.patch(
        "/api/admin/menu-items",
        json={"restaurant_id": restaurant.id, "menu_item_id": margherita.id, "available": True},
    )
    unknown_item = await client.patch(
        "/api/admin/menu-items",
        json={"restaurant_id": restaurant.id, "menu_item_id": 9999, "available": False},
    )
    unknown_restaurant = await client.patch(
        "/api/admin/menu-items",
        json={"restaurant_id": 999, "menu_item_id": margherita.id, "available": False},
    )

    assert disabled.status_code == 200
    assert disabled.json()["menu_item"]["available"] is False
    assert enabled.json()["menu_item"]["available"] is True
    assert unknown_item.status_code == 404
    assert unknown_item.json()["detail"] == "Menu item not found"
    assert unknown_restaurant.status_code == 404
    assert unknown_restaurant.json()["detail"] == "Restaurant not found"


async def test_admin_update_restaurant_changes_future_estimates(client, make_restaurant):
    restaurant = await make_restaurant(delivery_time_minutes=30)

    response = await client.patch(
        f"/api/admin/restaurants/{restaurant.id}",
        json={"delivery_time_minutes": 50, "opening_hours": {"open": "10:30"}},
    )

    assert response.status_code == 200
    assert response.json()["restaurant"]["delivery_time_minutes"] == 50
    assert response.json()["restaurant"]["opening_time"] == "10:30"

    estimate = (await client.get(f"/api/restaurants/{restaurant.id}/estimate")).json()
    assert estimate["estimated_minutes"] == 50.0


async def test_admin_update_restaurant_rejects_bad_hours(client, make_restaurant):
    restaurant = await make_restaurant()
    response = await client.patch(
        f"/api/admin/restaurants/{restaurant.id}",
        json={"opening_hours": {"close": "25:00"}},
    )
    assert response.status_code == 422


async def test_admin_update_days_open(client, make_restaurant):
    restaurant = await make_restaurant()

    updated = await client.patch(
        f"/api/admin/restaurants/{restaurant.id}",
        json={"opening_hours": {"days_open": [5, 1, 3, 1]}},
    )
    invalid = await client.patch(
        f"/api/admin/restaurants/{restaurant.id}",
        json={"opening_hours": {"days_open": [7]}},
    )

    assert updated.status_code == 200
    assert updated.json()["restaurant"]["days_open"] == [1, 3, 5]
    assert invalid.status_code == 422


async def test_admin_list_restaurants_sorted_by_name(client, make_restaurant):
    await make_restaurant(name="Zorba")
    await make_restaurant(name="Athena")

    response = await client.get("/api/admin/restaurants")

    assert [r["name"] for r in response.json()] == ["Athena", "Zorba"]


async def test_seed(client):
    response = await client.post("/api/seed", params={"count": 3})

    assert response.status_code == 200
    assert response.json()["restaurants_created"] == 3
    listing = (await client.get("/api/restaurants")).json()
    assert listing["total_count"] == 3


async def test_seed_forbidden_outside_development(client, monkeypatch):
    from app import main

    monkeypatch.setattr(main.settings, "env_mode", EnvironmentMode.PRODUCTION)

    response = await client.post("/api/seed")

    assert response.status_code == 403
