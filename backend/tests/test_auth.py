"""Tests for utils/auth.py – JWT generation, decoding, decorator."""

import jwt as pyjwt
import pytest
from utils.auth import (
    SECRET_KEY,
    can_access_partner,
    decode_refresh_token,
    decode_token,
    generate_access_token,
    generate_refresh_token,
    is_admin,
)


def test_generate_access_token(admin_user):
    token = generate_access_token(admin_user)
    assert isinstance(token, str)
    payload = pyjwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    assert payload["user_id"] == admin_user.id
    assert payload["type"] == "access"
    assert payload["role"] == "admin"


def test_generate_refresh_token(admin_user):
    token = generate_refresh_token(admin_user)
    payload = pyjwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    assert payload["user_id"] == admin_user.id
    assert payload["type"] == "refresh"
    assert "role" not in payload


def test_decode_access_rejects_refresh(admin_user):
    token = generate_refresh_token(admin_user)
    with pytest.raises(pyjwt.InvalidTokenError):
        decode_token(token)


def test_decode_refresh_rejects_access(admin_user):
    token = generate_access_token(admin_user)
    with pytest.raises(pyjwt.InvalidTokenError):
        decode_refresh_token(token)


def test_decode_invalid_token():
    with pytest.raises(pyjwt.InvalidTokenError):
        decode_token("not.a.token")


def test_token_required_no_header(client):
    rv = client.get("/partners")
    assert rv.status_code == 401
    assert rv.get_json()["error"] == "Token missing"


def test_token_required_bad_token(client):
    rv = client.get("/partners", headers={"Authorization": "Bearer bad"})
    assert rv.status_code == 401


def test_token_required_wrong_role(client, partner_headers):
    """Partner role cannot access admin-only endpoints."""
    rv = client.get("/partners", headers=partner_headers)
    assert rv.status_code == 403


def test_is_admin(admin_user, partner_user):
    assert is_admin(admin_user)
    assert not is_admin(partner_user)
    assert not is_admin(None)


def test_can_access_partner(admin_user, partner, other_partner):
    assert can_access_partner(admin_user, partner.id)
    assert can_access_partner(partner.user, partner.id)
    assert not can_access_partner(partner.user, other_partner.id)
