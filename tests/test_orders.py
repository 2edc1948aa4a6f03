import pytest


@pytest.fixture
def booking(client, seeded, user, bearer):
    john, studio = user("client", "john_doe"), user("partner", "photo_pro")
    res = client.post(
        "/api/orders",
        json={
            "order_name": "Engagement Shoot",
            "client_id": str(john["_id"]),
            "partner_id": str(studio["_id"]),
            "event_date_time": "2030-02-14T16:00:00Z",
            "event_details": {"event_type": "portrait", "event_name": "Beach engagement"},
            "location": {"venue": "Juhu Beach", "address": {"city": "Mumbai"}},
            "pricing": {
                "base_price": 10000,
                "additional_charges": [{"description": "Album", "amount": 2000}],
                "discount": {"amount": 1000},
                "taxes": {"percentage": 18},
            },
        },
        headers=bearer(john),
    )
    assert res.status_code == 201
    return res.json()["data"]


def move(client, order, headers, status, stage=None):
    body = {"status": status}
    if stage:
        body["stage"] = stage
    return client.patch(f"/api/orders/{order['id']}/status", json=body, headers=headers)


def test_create_order_prices_and_links(booking, seeded):
    assert booking["status"] == "pending"
    assert booking["progress"]["percentage"] == 0
    assert booking["pricing"]["total_amount"] == 12980
    assert booking["order_id"].startswith("ORD_")
    assert booking["partner_contact"]["company_name"] == "Pro Photography Studio"
    assert booking["order_age"] == 0

    john = seeded["client"].find_one({"username": "john_doe"})
    studio = seeded["partner"].find_one({"username": "photo_pro"})
    assert booking["id"] in john["orders"]
    assert booking["id"] in studio["projects"]["all"]
    assert booking["id"] in studio["projects"]["pending"]
    assert john["activities"][-1]["type"] == "order_placed"


def test_create_order_requires_auth(client, seeded, user):
    res = client.post("/api/orders", json={})
    assert res.status_code in (400, 401)


def test_create_order_unknown_partner(client, seeded, user, bearer):
    john = user("client", "john_doe")
    res = client.post(
        "/api/orders",
        json={
            "order_name": "Ghost booking",
            "client_id": str(john["_id"]),
            "partner_id": "5f1d7f5b9b1e8b3a2c4d6e8f",
            "event_date_time": "2030-01-01T10:00:00",
            "pricing": {"base_price": 100},
        },
        headers=bearer(john),
    )
    assert res.status_code == 404
    assert res.json()["message"] == "Partner not found"


def test_full_lifecycle(client, seeded, booking, user, bearer):
    studio = user("partner", "photo_pro")
    headers = bearer(studio)
    revenue_before = studio["total_revenue"]

    res = move(client, booking, headers, "confirmed")
    assert res.status_code == 200
    assert res.json()["data"]["progress"] == {"percentage": 10, "milestones": [], "current_stage": "booking_confirmed"}

    res = move(client, booking, headers, "in_progress")
    assert res.json()["data"]["progress"]["current_stage"] == "preparation"

    res = move(client, booking, headers, "in_progress", "shoot_day")
    assert res.json()["data"]["progress"]["percentage"] == 50

    res = move(client, booking, headers, "in_progress", "preparation")
    assert res.status_code == 409
    assert seeded["order"].find_one({"order_id": booking["order_id"]})["progress"]["current_stage"] == "shoot_day"

    res = move(client, booking, headers, "completed")
    assert res.status_code == 200
    assert res.json()["data"]["progress"]["percentage"] == 100

    studio = seeded["partner"].find_one({"_id": studio["_id"]})
    assert studio["total_revenue"] == revenue_before + 12980
    assert booking["id"] in studio["projects"]["completed"]
    assert booking["id"] not in studio["projects"]["pending"]
    assert booking["id"] not in studio["projects"]["active"]
    assert studio["transactions"][-1]["type"] == "payment_received"


def test_illegal_jump_is_conflict(client, booking, user, bearer):
    res = move(client, booking, bearer(user("client", "john_doe")), "completed")
    assert res.status_code == 409
    assert res.json()["success"] is False


def test_cancel_records_who_and_why(client, seeded, booking, user, bearer):
    john = user("client", "john_doe")
    res = client.patch(
        f"/api/orders/{booking['id']}/status",
        json={"status": "cancelled", "reason": "Date moved"},
        headers=bearer(john),
    )
    assert res.status_code == 200
    cancellation = res.json()["data"]["cancellation"]
    assert cancellation["cancelled_by"] == "Client"
    assert cancellation["reason"] == "Date moved"


def test_refund_after_completion_reverses_revenue(client, seeded, user, bearer):
    admin = user("admin", "admin")
    order = seeded["order"].find_one({"status": "completed"})
    partner_before = seeded["partner"].find_one({"username": "creative_lens"})["total_revenue"]

    res = move(client, {"id": str(order["_id"])}, bearer(admin), "refunded")
    assert res.status_code == 200
    assert res.json()["data"]["payment"]["status"] == "refunded"
    partner = seeded["partner"].find_one({"username": "creative_lens"})
    assert partner["total_revenue"] == partner_before - 15000


def test_strangers_cannot_move_orders(client, booking, user, bearer):
    res = move(client, booking, bearer(user("client", "jane_smith")), "confirmed")
    assert res.status_code == 403


def test_put_does_not_touch_status(client, booking, user, bearer):
    res = client.put(
        f"/api/orders/{booking['id']}",
        json={"special_instructions": "Golden hour please", "status": "completed"},
        headers=bearer(user("client", "john_doe")),
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["special_instructions"] == "Golden hour please"
    assert data["status"] == "pending"


def test_get_order_populates_parties(client, booking):
    res = client.get(f"/api/orders/{booking['id']}")
    data = res.json()["data"]
    assert data["client_id"]["username"] == "john_doe"
    assert data["partner_id"]["company_name"] == "Pro Photography Studio"


def test_client_orders_listing(client, booking, user):
    john = user("client", "john_doe")
    body = client.get(f"/api/clients/{john['_id']}/orders", params={"status": "pending"}).json()
    assert [o["order_name"] for o in body["data"]] == ["Engagement Shoot"]


def test_orders_are_placed_only_for_yourself(client, seeded, user, bearer):
    jane, lens = user("client", "jane_smith"), user("partner", "creative_lens")
    res = client.post(
        "/api/orders",
        json={
            "order_name": "Someone else's shoot",
            "client_id": str(jane["_id"]),
            "partner_id": str(lens["_id"]),
            "event_date_time": "2030-03-01T10:00:00",
            "pricing": {"base_price": 100},
        },
        headers=bearer(lens),
    )
    assert res.status_code == 403
    assert seeded["order"].count_documents({}) == 2


def test_pricing_is_locked_after_completion(client, seeded, user, bearer):
    admin = user("admin", "admin")
    order = seeded["order"].find_one({"status": "completed"})
    revenue = seeded["partner"].find_one({"username": "creative_lens"})["total_revenue"]

    res = client.put(f"/api/orders/{order['_id']}", json={"pricing": {"base_price": 1}}, headers=bearer(admin))
    assert res.status_code == 409
    assert seeded["order"].find_one({"_id": order["_id"]})["pricing"]["total_amount"] == 15000

    assert move(client, {"id": str(order["_id"])}, bearer(admin), "refunded").status_code == 200
    partner = seeded["partner"].find_one({"username": "creative_lens"})
    assert partner["total_revenue"] == revenue - 15000


def test_pending_orders_can_be_repriced(client, booking, user, bearer):
    res = client.put(
        f"/api/orders/{booking['id']}",
        json={"pricing": {"base_price": 5000}},
        headers=bearer(user("client", "john_doe")),
    )
    assert res.status_code == 200
    assert res.json()["data"]["pricing"]["total_amount"] == 5000
