"""Marketplace (Uzum, Yandex) store integrations per partner."""

from flask import Blueprint, jsonify, request

from models import MarketplaceIntegration, Partner, db
from utils.activity import log_activity
from utils.auth import token_required
from utils.crypto import encrypt_value, mask_secret
from utils.marketplace import MARKETPLACES, run_connection_check
from utils.validation import parse_choice, parse_number, require_fields

bp = Blueprint("marketplace", __name__)


def _serialize(i: MarketplaceIntegration) -> dict:
    return {
        "id": i.id,
        "partner_id": i.partner_id,
        "marketplace": i.marketplace,
        "store_name": i.store_name,
        "store_id": i.store_id,
        "api_key": mask_secret(i.api_key),
        "is_active": i.is_active,
        "auto_sync": i.auto_sync,
        "sync_frequency": i.sync_frequency,
        "last_sync_at": i.last_sync_at.isoformat() if i.last_sync_at else None,
        "last_sync_status": i.last_sync_status,
        "sync_errors": i.sync_errors or [],
    }


@bp.route("/admin/partners/<int:partner_id>/marketplace-integrations", methods=["POST"])
@token_required("admin")
def create_integration(partner_id):
    """Connect a partner store on a marketplace.

    ---
    tags:
      - Marketplace
    parameters:
      - in: body
        name: payload
        schema:
          type: object
          required: [marketplace, store_name]
          properties:
            marketplace:
              type: string
              enum: [uzum_market, yandex_market]
            store_name:
              type: string
            store_id:
              type: string
            api_key:
              type: string
            auto_sync:
              type: boolean
            sync_frequency:
              type: integer
    responses:
      201:
        description: Integration created, API key stored encrypted
      400:
        description: Invalid payload
      404:
        description: Unknown partner
    """
    db.get_or_404(Partner, partner_id)
    data = request.get_json(silent=True) or {}
    require_fields(data, ("marketplace", "store_name"))
    api_key = (data.get("api_key") or "").strip()
    integration = MarketplaceIntegration(
        partner_id=partner_id,
        marketplace=parse_choice(data, "marketplace", MARKETPLACES),
        store_name=data["store_name"],
        store_id=data.get("store_id"),
        api_key=encrypt_value(api_key) if api_key else None,
        auto_sync=bool(data.get("auto_sync", False)),
        sync_frequency=parse_number(data, "sync_frequency", integer=True, minimum=1, default=24),
    )
    db.session.add(integration)
    db.session.flush()
    log_activity(
        "marketplace.connect",
        details={"integration_id": integration.id, "marketplace": integration.marketplace},
    )
    db.session.commit()
    return jsonify(_serialize(integration)), 201


@bp.route("/admin/partners/<int:partner_id>/marketplace-integrations", methods=["GET"])
@token_required("admin")
def list_integrations(partner_id):
    """Integrations of a partner (API keys masked).

    ---
    tags:
      - Marketplace
    responses:
      200:
        description: Integrations
    """
    integrations = (
        MarketplaceIntegration.query.filter_by(partner_id=partner_id)
        .order_by(MarketplaceIntegration.id)
        .all()
    )
    return jsonify([_serialize(i) for i in integrations])


@bp.route("/admin/marketplace-integrations/<int:integration_id>", methods=["DELETE"])
@token_required("admin")
def delete_integration(integration_id):
    """Remove an integration.

    ---
    tags:
      - Marketplace
    responses:
      200:
        description: Integration deleted
    """
    integration = db.get_or_404(MarketplaceIntegration, integration_id)
    db.session.delete(integration)
    log_activity("marketplace.disconnect", details={"integration_id": integration_id})
    db.session.commit()
    return jsonify({"status": "success"})


@bp.route("/admin/marketplace-integrations/<int:integration_id>/test-connection", methods=["POST"])
@token_required("admin")
def test_connection(integration_id):
    """Check the stored credentials against the marketplace seller API.

    ---
    tags:
      - Marketplace
    responses:
      200:
        description: Credentials accepted
      502:
        description: Marketplace unreachable or credentials refused
    """
    integration = db.get_or_404(MarketplaceIntegration, integration_id)
    result = run_connection_check(integration)
    db.session.commit()
    status_code = 200 if result["status"] == "success" else 502
    return jsonify(result), status_code
