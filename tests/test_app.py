def test_root(client):
    body = client.get("/").json()
    assert body["success"] is True
    assert body["data"]["health"] == "/api/health"


def test_health_reports_database(client, seeded):
    body = client.get("/api/health").json()
    assert body["data"]["status"] == "OK"
    assert body["data"]["database"]["status"] == "connected"
    assert "client" in body["data"]["database"]["collections"]


def test_unknown_route(client):
    res = client.get("/api/nowhere")
    assert res.status_code == 404
    body = res.json()
    assert body["message"] == "Route /api/nowhere not found"
    assert "GET /api/partners" in body["availableRoutes"]


def test_malformed_id(client):
    res = client.get("/api/clients/not-an-id")
    assert res.status_code == 400
    assert res.json() == {"success": False, "data": None, "message": "Invalid id"}


def test_missing_record(client, seeded):
    res = client.get("/api/partners/5f1d7f5b9b1e8b3a2c4d6e8f")
    assert res.status_code == 404
    assert res.json()["message"] == "Partner not found"


def test_body_validation_errors_name_fields(client):
    res = client.post("/api/clients", json={"username": "ab", "email": "nope", "password": "123", "phone_no": "x"})
    assert res.status_code == 400
    fields = {e["field"] for e in res.json()["errors"]}
    assert fields == {"username", "email", "password", "phone_no"}


def test_create_client_hashes_password(client, db):
    res = client.post(
        "/api/clients",
        json={"username": "sam_lee", "email": "sam@example.com", "password": "secret1", "phone_no": "+44 20 7946 0958"},
    )
    assert res.status_code == 201
    assert "password" not in res.json()["data"]
    stored = db["client"].find_one({"username": "sam_lee"})
    assert stored["password"] != "secret1"
    assert stored["current_plan"]["plan_type"] == "free"


def test_error_bodies_share_the_envelope(client, seeded):
    body = client.get("/api/partners/5f1d7f5b9b1e8b3a2c4d6e8f").json()
    assert set(body) == {"success", "data", "message"}
    assert body["data"] is None
