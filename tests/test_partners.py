from datetime import datetime


def test_search_only_verified_active(client, seeded):
    seeded["partner"].update_one({"username": "photo_pro"}, {"$set": {"verified": False}})
    body = client.get("/api/partners/search").json()
    assert [p["username"] for p in body["data"]] == ["creative_lens"]
    assert body["count"] == 1


def test_search_by_location_and_budget(client, seeded):
    body = client.get("/api/partners/search", params={"location": "delhi"}).json()
    assert [p["username"] for p in body["data"]] == ["creative_lens"]

    body = client.get("/api/partners/search", params={"budget": 16000, "radius": 10}).json()
    assert [p["username"] for p in body["data"]] == ["photo_pro"]
    assert body["searchCriteria"]["radius"] == 10
    assert "email" not in body["data"][0]


def test_search_sorted_by_rating(client, seeded):
    body = client.get("/api/partners/search").json()
    assert [p["username"] for p in body["data"]] == ["creative_lens", "photo_pro"]


def test_search_skips_blacked_out_partners(client, seeded):
    seeded["partner"].update_one(
        {"username": "photo_pro"},
        {"$set": {"availability.blackout_dates": [{"date": datetime(2030, 6, 15), "reason": "Holiday"}]}},
    )
    body = client.get("/api/partners/search", params={"date": "2030-06-15T09:30:00"}).json()
    assert [p["username"] for p in body["data"]] == ["creative_lens"]

    body = client.get("/api/partners/search", params={"date": "2030-06-16"}).json()
    assert body["count"] == 2


def test_search_radius_bounds(client, seeded):
    assert client.get("/api/partners/search", params={"radius": 0}).status_code == 400


def test_availability_for_a_day_and_month(client, seeded):
    partner = seeded["partner"].find_one({"username": "photo_pro"})
    seeded["partner"].update_one(
        {"_id": partner["_id"]},
        {"$set": {"availability.blackout_dates": [{"date": datetime(2030, 6, 15), "reason": "Holiday"}]}},
    )
    url = f"/api/partners/{partner['_id']}/availability"

    assert client.get(url, params={"date": "2030-06-15"}).json()["data"]["available"] is False
    assert client.get(url, params={"date": "2030-06-14"}).json()["data"]["available"] is True

    data = client.get(url, params={"month": "2030-06"}).json()["data"]
    assert len(data["blackoutDates"]) == 1
    assert client.get(url, params={"month": "2030-13"}).status_code == 400


def test_review_recomputes_ratings(client, seeded, user, bearer):
    jane, lens = user("client", "jane_smith"), user("partner", "creative_lens")
    order = seeded["order"].find_one({"client_id": str(jane["_id"])})

    res = client.post(
        f"/api/partners/{lens['_id']}/reviews",
        json={"client_id": str(jane["_id"]), "order_id": str(order["_id"]), "rating": 4, "comment": "Lovely"},
        headers=bearer(jane),
    )
    assert res.status_code == 201
    ratings = res.json()["data"]["ratings"]
    assert ratings == {
        "average": 4.0,
        "total_reviews": 1,
        "breakdown": {"five": 0, "four": 1, "three": 0, "two": 0, "one": 0},
    }
    assert seeded["order"].find_one({"_id": order["_id"]})["review"]["client_review"]["rating"] == 4

    res = client.post(
        f"/api/partners/{lens['_id']}/reviews",
        json={"client_id": str(jane["_id"]), "rating": 5},
        headers=bearer(jane),
    )
    assert res.json()["data"]["ratings"]["average"] == 4.5


def test_review_needs_completed_order(client, seeded, user, bearer):
    john, studio = user("client", "john_doe"), user("partner", "photo_pro")
    order = seeded["order"].find_one({"client_id": str(john["_id"])})
    res = client.post(
        f"/api/partners/{studio['_id']}/reviews",
        json={"client_id": str(john["_id"]), "order_id": str(order["_id"]), "rating": 5},
        headers=bearer(john),
    )
    assert res.status_code == 400


def test_review_rating_bounds(client, seeded, user, bearer):
    jane, lens = user("client", "jane_smith"), user("partner", "creative_lens")
    res = client.post(
        f"/api/partners/{lens['_id']}/reviews",
        json={"client_id": str(jane["_id"]), "rating": 6},
        headers=bearer(jane),
    )
    assert res.status_code == 400


def test_create_partner_duplicate(client, seeded):
    body = {
        "username": "photo_pro",
        "email": "someone@example.com",
        "password": "secret1",
        "company_name": "Another Studio",
        "phone_no": "+911234567",
        "shoot_type": ["wedding"],
    }
    res = client.post("/api/partners", json=body)
    assert res.status_code == 409

    body["username"] = "fresh_lens"
    res = client.post("/api/partners", json=body)
    assert res.status_code == 201
    assert "password" not in res.json()["data"]
    assert seeded["partner"].find_one({"username": "fresh_lens"})["password"].startswith("$2")


def test_partner_update_ignores_ratings(client, seeded, user, bearer):
    lens = user("partner", "creative_lens")
    res = client.put(
        f"/api/partners/{lens['_id']}",
        json={"specialization": ["editorial"], "ratings": {"average": 1}, "total_revenue": 1},
        headers=bearer(lens),
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["specialization"] == ["editorial"]
    assert data["ratings"]["average"] == 4.8


def test_favourites(client, seeded, user, bearer):
    john, lens = user("client", "john_doe"), user("partner", "creative_lens")
    url = f"/api/clients/{john['_id']}/favourites"

    res = client.post(url, json={"partner_id": str(lens["_id"])}, headers=bearer(john))
    assert res.status_code == 201
    client.post(url, json={"partner_id": str(lens["_id"])}, headers=bearer(john))
    assert len(seeded["client"].find_one({"_id": john["_id"]})["favourite_partners"]) == 1

    detail = client.get(f"/api/clients/{john['_id']}").json()["data"]
    assert detail["favourite_partners"][0]["partner_id"]["username"] == "creative_lens"

    res = client.delete(f"{url}/{lens['_id']}", headers=bearer(john))
    assert res.json()["data"] == []


def test_search_keeps_partners_blacked_out_around_the_date(client, seeded):
    seeded["partner"].update_one(
        {"username": "photo_pro"},
        {"$set": {"availability.blackout_dates": [
            {"date": datetime(2030, 6, 10), "reason": "Travel"},
            {"date": datetime(2030, 6, 20), "reason": "Holiday"},
        ]}},
    )
    body = client.get("/api/partners/search", params={"date": "2030-06-15T00:00:00"}).json()
    assert [p["username"] for p in body["data"]] == ["creative_lens", "photo_pro"]

    body = client.get("/api/partners/search", params={"date": "2030-06-20T18:00:00"}).json()
    assert [p["username"] for p in body["data"]] == ["creative_lens"]


def test_order_can_only_be_reviewed_once(client, seeded, user, bearer):
    jane, lens = user("client", "jane_smith"), user("partner", "creative_lens")
    order = seeded["order"].find_one({"client_id": str(jane["_id"])})
    body = {"client_id": str(jane["_id"]), "order_id": str(order["_id"]), "rating": 5}
    url = f"/api/partners/{lens['_id']}/reviews"

    assert client.post(url, json=body, headers=bearer(jane)).status_code == 201
    res = client.post(url, json={**body, "rating": 1}, headers=bearer(jane))
    assert res.status_code == 409
    assert res.json()["message"] == "This order has already been reviewed"

    partner = seeded["partner"].find_one({"_id": lens["_id"]})
    assert partner["ratings"]["total_reviews"] == 1
    assert partner["ratings"]["average"] == 5.0
