import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main
from seed_data import ADMIN_EMAIL, ADMIN_PASSWORD


@pytest.fixture
def fake_db(monkeypatch):
    store = mongomock.MongoClient()["sazo_test"]
    monkeypatch.setattr(database, "db", store)
    monkeypatch.setattr(main, "db", store)
    database.ensure_indexes(store)
    main.seed_database()
    return store


@pytest.fixture
def client(fake_db):
    return TestClient(main.app)


@pytest.fixture
def admin_token(client):
    res = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert res.status_code == 200
    return res.json()["token"]


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def with_shipping(client, admin_headers):
    res = client.put("/settings", headers=admin_headers, json={
        "shipping_options": [
            {"id": "dhaka", "label": "Inside Dhaka", "charge": 100},
            {"id": "outside", "label": "Outside Dhaka", "charge": 150},
        ],
    })
    assert res.status_code == 200
    return res.json()


def order_payload(**overrides):
    payload = {
        "customer_details": {"name": "Ayesha", "phone": "01700000000", "address": "House 4, Road 2", "city": "Dhaka"},
        "cart_items": [
            {"product_id": "101", "name": "Gulmohar Lawn Suit", "price": 3500, "quantity": 2, "image": None, "size": "M"},
        ],
        "total": 7100,
        "payment_info": {"payment_method": "COD"},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_order():
    return order_payload
