"""Tests for routes/marketplace.py – store integrations and connection checks."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests
from models import MarketplaceIntegration, db
from utils.crypto import decrypt_value


def _connect(client, headers, partner_id, **overrides):
    payload = {
        "marketplace": "uzum_market",
        "store_name": "Gadget Store",
        "store_id": "4411",
        "api_key": "uzum-secret-key",
    }
    payload.update(overrides)
    return client.post(
        f"/admin/partners/{partner_id}/marketplace-integrations",
        data=json.dumps(payload),
        headers=headers,
    )


def test_create_integration_encrypts_key(client, admin_headers, partner):
    rv = _connect(client, admin_headers, partner.id)
    assert rv.status_code == 201
    data = rv.get_json()
    assert data["api_key"] == "********"
    assert data["sync_frequency"] == 24

    stored = db.session.get(MarketplaceIntegration, data["id"])
    assert stored.api_key != "uzum-secret-key"
    assert decrypt_value(stored.api_key) == "uzum-secret-key"


def test_create_integration_unknown_marketplace(client, admin_headers, partner):
    rv = _connect(client, admin_headers, partner.id, marketplace="ozon")
    assert rv.status_code == 400


def test_create_integration_unknown_partner(client, admin_headers):
    rv = _connect(client, admin_headers, 999)
    assert rv.status_code == 404


def test_list_and_delete_integrations(client, admin_headers, partner):
    integration_id = _connect(client, admin_headers, partner.id).get_json()["id"]
    _connect(client, admin_headers, partner.id, marketplace="yandex_market")

    rv = client.get(f"/admin/partners/{partner.id}/marketplace-integrations", headers=admin_headers)
    assert len(rv.get_json()) == 2

    rv = client.delete(f"/admin/marketplace-integrations/{integration_id}", headers=admin_headers)
    assert rv.get_json()["status"] == "success"
    assert MarketplaceIntegration.query.count() == 1


@patch("utils.marketplace.requests.get")
def test_connection_success(mock_get, client, admin_headers, partner):
    mock_get.return_value = MagicMock(status_code=200)
    integration_id = _connect(client, admin_headers, partner.id).get_json()["id"]

    rv = client.post(
        f"/admin/marketplace-integrations/{integration_id}/test-connection", headers=admin_headers
    )
    assert rv.status_code == 200
    assert rv.get_json()["status"] == "success"

    _, kwargs = mock_get.call_args
    assert kwargs["headers"]["Authorization"] == "uzum-secret-key"
    integration = db.session.get(MarketplaceIntegration, integration_id)
    assert integration.last_sync_status == "success"
    assert integration.last_sync_at is not None


@patch("utils.marketplace.requests.get")
def test_connection_failure(mock_get, client, admin_headers, partner):
    mock_get.side_effect = requests.ConnectionError("unreachable")
    integration_id = _connect(
        client, admin_headers, partner.id, marketplace="yandex_market"
    ).get_json()["id"]

    rv = client.post(
        f"/admin/marketplace-integrations/{integration_id}/test-connection", headers=admin_headers
    )
    assert rv.status_code == 502
    data = rv.get_json()
    assert data["status"] == "failed"
    assert "unreachable" in data["error"]
    integration = db.session.get(MarketplaceIntegration, integration_id)
    assert integration.last_sync_status == "failed"
    assert integration.sync_errors


@patch("utils.marketplace.requests.get")
def test_connection_without_key(mock_get, client, admin_headers, partner):
    integration_id = _connect(client, admin_headers, partner.id, api_key="").get_json()["id"]
    rv = client.post(
        f"/admin/marketplace-integrations/{integration_id}/test-connection", headers=admin_headers
    )
    assert rv.status_code == 502
    mock_get.assert_not_called()


@patch("utils.marketplace.requests.get")
def test_connection_with_undecryptable_key(mock_get, client, admin_headers, partner):
    from cryptography.fernet import Fernet

    integration_id = _connect(client, admin_headers, partner.id).get_json()["id"]
    integration = db.session.get(MarketplaceIntegration, integration_id)
    integration.api_key = Fernet(Fernet.generate_key()).encrypt(b"rotated").decode()
    db.session.commit()

    rv = client.post(
        f"/admin/marketplace-integrations/{integration_id}/test-connection", headers=admin_headers
    )
    assert rv.status_code == 502
    assert "decrypted" in rv.get_json()["error"]
    integration = db.session.get(MarketplaceIntegration, integration_id)
    assert integration.last_sync_status == "failed"
    assert integration.sync_errors
    mock_get.assert_not_called()


def test_unknown_integration_not_found(client, admin_headers):
    assert client.post(
        "/admin/marketplace-integrations/999/test-connection", headers=admin_headers
    ).status_code == 404
    assert client.delete(
        "/admin/marketplace-integrations/999", headers=admin_headers
    ).status_code == 404
