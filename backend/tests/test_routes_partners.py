"""Tests for routes/partners.py – registration, tiers and fee summary."""

import json
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from models import Partner, PartnerRegistrationRequest, User, db

REGISTRATION = {
    "login": "newpartner",
    "password": "secret123",
    "phone": "+998901234567",
    "address": "Tashkent",
    "product_category": "electronics",
    "investment_amount": "50,000,000",
    "product_quantity": 200,
}


def _register(client, **overrides):
    payload = dict(REGISTRATION, **overrides)
    return client.post(
        "/partner-registration-requests",
        data=json.dumps(payload),
        content_type="application/json",
    )


# ── POST /partner-registration-requests ──────────────────────────────


def test_register_creates_pending_request(client):
    rv = _register(client)
    assert rv.status_code == 201
    data = rv.get_json()
    assert data["status"] == "pending"
    assert data["investment_amount"] == 50_000_000
    assert "password" not in data
    assert "password_hash" not in data


def test_register_missing_fields(client):
    rv = client.post(
        "/partner-registration-requests",
        data=json.dumps({"login": "x", "password": "y"}),
        content_type="application/json",
    )
    assert rv.status_code == 400
    assert "phone" in rv.get_json()["error"]


@pytest.mark.parametrize("field", ["login", "password", "phone"])
def test_register_rejects_non_string_fields(client, field):
    rv = _register(client, **{field: 12345})
    assert rv.status_code == 400
    assert field in rv.get_json()["error"]
    assert PartnerRegistrationRequest.query.count() == 0


def test_register_duplicate_login(client, partner_user):
    assert _register(client, login="partner_test").status_code == 400
    assert _register(client).status_code == 201
    assert _register(client).status_code == 400


# ── approve / reject ─────────────────────────────────────────────────


def test_list_registrations_filter(client, admin_headers):
    _register(client)
    _register(client, login="second")
    rv = client.get("/partner-registration-requests?status=pending", headers=admin_headers)
    assert rv.status_code == 200
    assert len(rv.get_json()) == 2
    rv = client.get("/partner-registration-requests?status=approved", headers=admin_headers)
    assert rv.get_json() == []


@patch("routes.partners.send_sms")
def test_approve_registration_creates_basic_partner(mock_sms, client, admin_headers):
    reg_id = _register(client).get_json()["id"]
    rv = client.post(
        f"/partner-registration-requests/{reg_id}/approve", headers=admin_headers
    )
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["status"] == "approved"
    partner = data["partner"]
    assert partner["pricing_tier"] == "basic"
    assert partner["fixed_payment"] == 0
    assert partner["commission_rate"] == 45
    assert partner["max_product_requests"] == 25
    mock_sms.assert_called_once()

    user = User.query.filter_by(username="newpartner").one()
    assert user.role == "partner"
    assert user.check_password("secret123")

    rv = client.post(
        "/login",
        data=json.dumps({"login": "newpartner", "password": "secret123"}),
        content_type="application/json",
    )
    assert rv.status_code == 200


@patch("routes.partners.send_sms")
def test_approve_twice_conflicts(mock_sms, client, admin_headers):
    reg_id = _register(client).get_json()["id"]
    client.post(f"/partner-registration-requests/{reg_id}/approve", headers=admin_headers)
    rv = client.post(f"/partner-registration-requests/{reg_id}/approve", headers=admin_headers)
    assert rv.status_code == 409


def test_reject_registration_requires_reason(client, admin_headers):
    reg_id = _register(client).get_json()["id"]
    rv = client.post(
        f"/partner-registration-requests/{reg_id}/reject",
        data=json.dumps({}),
        headers=admin_headers,
    )
    assert rv.status_code == 400

    rv = client.post(
        f"/partner-registration-requests/{reg_id}/reject",
        data=json.dumps({"reason": "Incomplete documents"}),
        headers=admin_headers,
    )
    assert rv.status_code == 200
    reg = db.session.get(PartnerRegistrationRequest, reg_id)
    assert reg.status == "rejected"
    assert reg.rejection_reason == "Incomplete documents"


def test_approve_requires_admin(client, partner_headers):
    reg_id = _register(client).get_json()["id"]
    rv = client.post(
        f"/partner-registration-requests/{reg_id}/approve", headers=partner_headers
    )
    assert rv.status_code == 403


def test_approve_unknown_registration(client, admin_headers):
    rv = client.post("/partner-registration-requests/999/approve", headers=admin_headers)
    assert rv.status_code == 404


# ── /partners ────────────────────────────────────────────────────────


def test_list_partners(client, admin_headers, partner, other_partner):
    rv = client.get("/partners", headers=admin_headers)
    assert rv.status_code == 200
    assert [p["pricing_tier"] for p in rv.get_json()] == ["basic", "professional"]


def test_create_partner_for_user(client, admin_headers):
    user = User(username="plain", email="plain@test.com", role="partner")
    user.set_password("x")
    db.session.add(user)
    db.session.commit()

    rv = client.post(
        "/partners",
        data=json.dumps({"user_id": user.id, "pricing_tier": "enterprise", "business_name": "Big Co"}),
        headers=admin_headers,
    )
    assert rv.status_code == 201
    data = rv.get_json()
    assert data["pricing_tier"] == "enterprise"
    assert data["fixed_payment"] == 10_000_000
    assert data["unlimited_product_requests"] is True

    rv = client.post(
        "/partners",
        data=json.dumps({"user_id": user.id}),
        headers=admin_headers,
    )
    assert rv.status_code == 409


def test_create_partner_unknown_tier(client, admin_headers):
    user = User(username="plain", email="plain@test.com", role="partner")
    user.set_password("x")
    db.session.add(user)
    db.session.commit()
    rv = client.post(
        "/partners",
        data=json.dumps({"user_id": user.id, "pricing_tier": "gold"}),
        headers=admin_headers,
    )
    assert rv.status_code == 400
    assert Partner.query.count() == 0


def test_get_partner(client, admin_headers, partner):
    rv = client.get(f"/partners/{partner.id}", headers=admin_headers)
    assert rv.status_code == 200
    assert rv.get_json()["business_name"] == "partner_test LLC"


def test_get_partner_not_found(client, admin_headers):
    rv = client.get("/partners/999", headers=admin_headers)
    assert rv.status_code == 404


@pytest.mark.parametrize(
    "method, url",
    [("get", "/partners/999/fee-summary"), ("post", "/partners/999/tier")],
)
def test_partner_routes_unknown_id(client, admin_headers, method, url):
    rv = getattr(client, method)(url, data=json.dumps({"tier": "basic"}), headers=admin_headers)
    assert rv.status_code == 404


def test_update_partner_tier(client, admin_headers, partner):
    rv = client.post(
        f"/partners/{partner.id}/tier",
        data=json.dumps({"tier": "professional_plus"}),
        headers=admin_headers,
    )
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["pricing_tier"] == "professional_plus"
    assert data["fixed_payment"] == 6_000_000
    assert data["max_product_requests"] == -1


def test_update_partner_tier_unknown(client, admin_headers, partner):
    rv = client.post(
        f"/partners/{partner.id}/tier",
        data=json.dumps({"tier": "gold"}),
        headers=admin_headers,
    )
    assert rv.status_code == 400
    assert db.session.get(Partner, partner.id).pricing_tier == "basic"


# ── fee summary ──────────────────────────────────────────────────────


def _this_month():
    return datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _set_figures(partner, month, sales=20_000_000, cost=12_000_000, units=1):
    partner.monthly_sales = sales
    partner.monthly_cost = cost
    partner.monthly_units = units
    partner.figures_month = month
    db.session.commit()


def test_fee_summary(client, partner_headers, partner):
    _set_figures(partner, _this_month())

    rv = client.get(f"/partners/{partner.id}/fee-summary", headers=partner_headers)
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["tier"] == "basic"
    assert data["commission_rate"] == 40
    assert data["partner_profit"] == pytest.approx(4_654_836)


def test_fee_summary_empty_month(client, admin_headers, other_partner):
    rv = client.get(f"/partners/{other_partner.id}/fee-summary", headers=admin_headers)
    data = rv.get_json()
    assert data["net_profit"] == 0
    assert data["total_fee"] == 3_500_000


def test_fee_summary_ignores_previous_month(client, partner_headers, admin_headers, partner):
    last_month = (_this_month() - timedelta(days=1)).replace(day=1)
    _set_figures(partner, last_month)

    data = client.get(f"/partners/{partner.id}/fee-summary", headers=partner_headers).get_json()
    assert data["net_profit"] == 0
    assert data["total_fee"] == 0

    listed = client.get(f"/partners/{partner.id}", headers=admin_headers).get_json()
    assert listed["monthly_sales"] == 0
    assert listed["monthly_units"] == 0


def test_fee_summary_other_partner_forbidden(client, partner_headers, other_partner):
    rv = client.get(f"/partners/{other_partner.id}/fee-summary", headers=partner_headers)
    assert rv.status_code == 403


def test_my_partner(client, partner_headers, partner):
    rv = client.get("/me/partner", headers=partner_headers)
    assert rv.status_code == 200
    assert rv.get_json()["id"] == partner.id
