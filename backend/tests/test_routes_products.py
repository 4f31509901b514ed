"""Tests for routes/products.py – warehouse stock."""

import json

import pytest
from models import Product, db


@pytest.fixture()
def product(partner):
    p = Product(
        name="Phone case",
        sku="CASE-001",
        price=50_000,
        cost_price=20_000,
        stock_quantity=5,
        partner_id=partner.id,
    )
    db.session.add(p)
    db.session.commit()
    return p


def _create(client, headers, **overrides):
    payload = {"name": "Charger", "sku": "CHG-1", "price": "120,000", "cost_price": 60_000}
    payload.update(overrides)
    return client.post("/products", data=json.dumps(payload), headers=headers)


def test_create_product(client, admin_headers, partner):
    rv = _create(client, admin_headers, partner_id=partner.id, stock_quantity=40)
    assert rv.status_code == 201
    data = rv.get_json()
    assert data["price"] == 120_000
    assert data["available_quantity"] == 40
    assert data["low_stock_threshold"] == 10


def test_create_product_duplicate_sku(client, admin_headers, partner, product):
    rv = _create(client, admin_headers, partner_id=partner.id, sku="CASE-001")
    assert rv.status_code == 400


def test_create_product_unknown_partner(client, admin_headers):
    rv = _create(client, admin_headers, partner_id=999)
    assert rv.status_code == 400


def test_create_product_missing_fields(client, admin_headers):
    rv = client.post("/products", data=json.dumps({"name": "x"}), headers=admin_headers)
    assert rv.status_code == 400


def test_create_product_requires_admin(client, partner_headers, partner):
    rv = _create(client, partner_headers, partner_id=partner.id)
    assert rv.status_code == 403


def test_list_products_by_role(client, admin_headers, other_partner_headers, product):
    assert len(client.get("/products", headers=admin_headers).get_json()) == 1
    assert client.get("/products", headers=other_partner_headers).get_json() == []


def test_list_partner_products(client, partner_headers, other_partner_headers, partner, product):
    rv = client.get(f"/products/partner/{partner.id}", headers=partner_headers)
    assert rv.status_code == 200
    assert rv.get_json()[0]["sku"] == "CASE-001"

    rv = client.get(f"/products/partner/{partner.id}", headers=other_partner_headers)
    assert rv.status_code == 403


def test_low_stock(client, admin_headers, partner, product):
    db.session.add(
        Product(name="Cable", sku="CBL-1", price=10_000, stock_quantity=500, partner_id=partner.id)
    )
    db.session.commit()
    rv = client.get("/admin/inventory/low-stock", headers=admin_headers)
    assert rv.status_code == 200
    assert [p["sku"] for p in rv.get_json()] == ["CASE-001"]
