"""
Tests for the raw table and dump preview API.
"""

DUMP = """
INSERT INTO `User` VALUES ('ann@x.com','Ann',NULL,'Lee',NULL,'2024-01-10');
INSERT INTO subscriber VALUES ('ann@x.com');
INSERT INTO subscriber2 VALUES ('ann@x.com', '4111111111115678');
INSERT INTO plan VALUES ('Basic', 1, 9.99);
INSERT INTO subscription VALUES (1, '2024-01-15', '2025-01-15', 'active');
INSERT INTO has VALUES ('ann@x.com', 1);
INSERT INTO `to` VALUES (1, 'Basic');
"""


def test_dump_table_masks_cards(client, plans):
    client.post(
        "/api/v1/users",
        json={"email": "a@x.com", "firstName": "Ann", "lastName": "Lee", "userType": "subscriber"},
    )
    client.post(
        "/api/v1/subscriptions",
        json={"userEmail": "a@x.com", "planName": "Basic", "paymentMethod": {"cardNumber": "4111111111119999"}},
    )

    rows = client.get("/api/v1/tables/payment_methods").json()

    assert len(rows) == 1
    assert rows[0]["card_number"] == "****-****-****-9999"


def test_dump_plans_table(client, plans):
    rows = client.get("/api/v1/tables/plans").json()
    assert [row["plan_name"] for row in rows] == ["Basic", "Standard", "Premium"]


def test_unknown_table_is_404(client):
    response = client.get("/api/v1/tables/secrets")
    assert response.status_code == 404
    assert response.json() == {"detail": "Table not found: secrets"}


def test_import_preview(client):
    response = client.post("/api/v1/import/preview", json={"sql": DUMP})

    assert response.status_code == 200
    snapshot = response.json()
    assert snapshot["users"][0]["userType"] == "subscriber"
    assert snapshot["subscriptions"][0]["paymentMethod"]["cardNumber"] == "****-****-****-5678"
    assert snapshot["plans"] == [{"planName": "Basic", "maxScreens": 1, "monthlyPrice": 9.99}]
    # Nothing is written
    assert client.get("/api/v1/users").json() == []


def test_import_preview_bad_sql_is_422(client):
    response = client.post("/api/v1/import/preview", json={"sql": "INSERT INTO movie VALUES ('open"})
    assert response.status_code == 422


def test_dump_table_by_legacy_name(client):
    client.post(
        "/api/v1/users",
        json={"email": "a@x.com", "firstName": "Ann", "lastName": "Lee", "phoneNumber": 5551234567},
    )

    response = client.get("/api/v1/tables/user2")

    assert response.status_code == 200
    assert [row["phone_number"] for row in response.json()] == ["5551234567"]
