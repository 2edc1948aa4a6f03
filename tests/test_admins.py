def test_dashboard_counts(client, seeded, user, bearer):
    res = client.get("/api/admins/dashboard", headers=bearer(user("admin", "admin")))
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["overview"] == {
        "totalClients": 2,
        "totalPartners": 2,
        "totalOrders": 2,
        "activeOrders": 1,
        "completedOrders": 1,
        "premiumClients": 1,
        "premiumPartners": 0,
        "verifiedPartners": 2,
    }
    assert data["revenue"]["totalRevenue"] == 40000
    assert data["revenue"]["totalOrders"] == 2
    assert [p["username"] for p in data["topPartners"]] == ["creative_lens", "photo_pro"]
    assert len(data["recentOrders"]) == 2
    assert "username" in data["recentOrders"][0]["client_id"]


def test_dashboard_date_window_excludes_everything_in_the_future(client, seeded, user, bearer):
    res = client.get(
        "/api/admins/dashboard",
        params={"dateFrom": "2099-01-01"},
        headers=bearer(user("admin", "admin")),
    )
    overview = res.json()["data"]["overview"]
    assert overview["totalOrders"] == 0
    assert overview["totalClients"] == 0


def test_admin_routes_reject_other_roles(client, seeded, user, bearer):
    res = client.get("/api/admins/dashboard", headers=bearer(user("client", "john_doe")))
    assert res.status_code == 403
    assert res.json()["message"] == "Access denied. Insufficient permissions."
    assert client.get("/api/admins/dashboard").status_code == 401


def test_system_health_has_no_random_numbers(client, seeded, user, bearer):
    admin = user("admin", "admin")
    client.post("/api/auth/login", json={"email": "john@example.com", "password": "password123"})
    data = client.get("/api/admins/system-health", headers=bearer(admin)).json()["data"]
    assert data["status"] == "healthy"
    assert data["database"]["status"] == "connected"
    assert data["activeUsers"] == {"clients": 1, "partners": 0, "total": 1}
    assert data["uptimeSeconds"] >= 0


def test_only_super_admin_creates_admins(client, seeded, user, bearer):
    body = {"username": "ops_admin", "email": "ops@pixisphere.com", "password": "secret1", "phone_no": "+1 222"}
    res = client.post("/api/admins", json=body, headers=bearer(user("admin", "admin")))
    assert res.status_code == 201
    assert res.json()["data"]["admin_id"].startswith("ADM_")

    ops = seeded["admin"].find_one({"username": "ops_admin"})
    res = client.post(
        "/api/admins",
        json={**body, "username": "ops_two", "email": "two@pixisphere.com"},
        headers=bearer(ops),
    )
    assert res.status_code == 403

    res = client.post("/api/admins", json=body, headers=bearer(user("admin", "admin")))
    assert res.status_code == 409


def test_list_admins_hides_passwords(client, seeded, user, bearer):
    body = client.get("/api/admins", headers=bearer(user("admin", "admin"))).json()
    assert body["pagination"]["totalCount"] == 1
    assert "password" not in body["data"][0]


def test_admin_can_delete_client(client, seeded, user, bearer):
    jane = user("client", "jane_smith")
    res = client.delete(f"/api/clients/{jane['_id']}", headers=bearer(user("admin", "admin")))
    assert res.status_code == 200
    assert seeded["client"].count_documents({}) == 1

    res = client.delete(f"/api/clients/{jane['_id']}", headers=bearer(user("admin", "admin")))
    assert res.status_code == 404


def test_books_writes_are_admin_only(client, seeded, user, bearer):
    book = {"title": "Dune", "author": "Frank Herbert", "available_copies": 2, "total_copies": 2}
    assert client.post("/api/books", json=book, headers=bearer(user("client", "john_doe"))).status_code == 403

    res = client.post("/api/books", json=book, headers=bearer(user("admin", "admin")))
    assert res.status_code == 201
    book_id = res.json()["data"]["id"]

    res = client.put(f"/api/books/{book_id}", json={"available_copies": 0}, headers=bearer(user("admin", "admin")))
    assert res.json()["data"]["available_copies"] == 0
    assert client.get(f"/api/books/{book_id}").json()["data"]["title"] == "Dune"
