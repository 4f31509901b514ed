"""Seller API clients for the Uzum and Yandex marketplaces.

Only the connection check is implemented; catalogue and order sync are
handled by the marketplaces' own dashboards for now.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Dict

import requests

from models import MarketplaceIntegration
from utils.crypto import decrypt_value

logger = logging.getLogger(__name__)

MARKETPLACES: Dict[str, Dict[str, str]] = {
    "uzum_market": {
        "label": "Uzum Market",
        "base_url": os.getenv("UZUM_API_URL", "https://api-seller.uzum.uz/api/seller-openapi"),
        "check_path": "/v1/shops",
        "auth_header": "Authorization",
    },
    "yandex_market": {
        "label": "Yandex Market",
        "base_url": os.getenv("YANDEX_API_URL", "https://api.partner.market.yandex.ru"),
        "check_path": "/campaigns",
        "auth_header": "Api-Key",
    },
}


class MarketplaceError(RuntimeError):
    """Raised when a marketplace API cannot be reached or refuses the credentials."""


class MarketplaceClient:
    def __init__(self, marketplace: str, api_key: str, timeout: float | None = None):
        if marketplace not in MARKETPLACES:
            raise ValueError(f"Unsupported marketplace '{marketplace}'")
        self.marketplace = marketplace
        self.settings = MARKETPLACES[marketplace]
        self.api_key = api_key
        self.timeout = timeout or float(os.getenv("MARKETPLACE_TIMEOUT", "15"))

    @classmethod
    def for_integration(cls, integration: MarketplaceIntegration) -> "MarketplaceClient":
        if not integration.api_key:
            raise MarketplaceError("No API key stored for this integration")
        try:
            api_key = decrypt_value(integration.api_key)
        except RuntimeError as exc:
            raise MarketplaceError(str(exc)) from exc
        return cls(integration.marketplace, api_key)

    def _url(self, path: str) -> str:
        return self.settings["base_url"].rstrip("/") + "/" + path.lstrip("/")

    def test_connection(self) -> Dict[str, Any]:
        headers = {self.settings["auth_header"]: self.api_key, "Accept": "application/json"}
        try:
            response = requests.get(
                self._url(self.settings["check_path"]), headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise MarketplaceError(f"{self.settings['label']}: {exc}") from exc
        return {"marketplace": self.marketplace, "status": "success"}


def run_connection_check(integration: MarketplaceIntegration) -> Dict[str, Any]:
    """Check the integration credentials and record the outcome on the row.

    The caller commits the session.
    """
    integration.last_sync_at = datetime.utcnow()
    try:
        result = MarketplaceClient.for_integration(integration).test_connection()
    except MarketplaceError as exc:
        logger.warning(
            "Marketplace check failed integration=%s: %s", integration.id, exc
        )
        integration.last_sync_status = "failed"
        integration.sync_errors = [str(exc)]
        return {"marketplace": integration.marketplace, "status": "failed", "error": str(exc)}
    integration.last_sync_status = "success"
    integration.sync_errors = None
    logger.info("Marketplace check succeeded integration=%s", integration.id)
    return result
