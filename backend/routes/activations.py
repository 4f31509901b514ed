"""Partner activation: legal details and the tier the partner signs up for."""

import logging

from flask import Blueprint, jsonify, request

from models import PartnerActivation, db
from utils.activity import log_activity
from utils.auth import token_required
from utils.partners import apply_tier
from utils.pricing import current_catalog
from utils.validation import ValidationError

logger = logging.getLogger(__name__)

bp = Blueprint("activations", __name__)

LEGAL_FORMS = ("LLC", "JSC", "IP", "other")


def _serialize(activation: PartnerActivation) -> dict:
    return {
        "id": activation.id,
        "partner_id": activation.partner_id,
        "company_name": activation.company_name,
        "legal_form": activation.legal_form,
        "tax_id": activation.tax_id,
        "bank_account": activation.bank_account,
        "bank_name": activation.bank_name,
        "mfo": activation.mfo,
        "legal_address": activation.legal_address,
        "company_documents": activation.company_documents or [],
        "chosen_tier": activation.chosen_tier,
        "status": activation.status,
        "rejection_reason": activation.rejection_reason,
        "created_at": activation.created_at.isoformat() if activation.created_at else None,
    }


def _pending_or_409(activation: PartnerActivation):
    if activation.status != "pending":
        return jsonify({"error": f"Activation is already {activation.status}"}), 409
    return None


@bp.route("/partner-activation-requests", methods=["POST"])
@token_required("partner")
def create_activation():
    """Submit legal details and the chosen pricing tier.

    ---
    tags:
      - Activations
    consumes:
      - application/json
    parameters:
      - in: body
        name: payload
        schema:
          type: object
          required: [chosen_tier]
          properties:
            company_name:
              type: string
            legal_form:
              type: string
              enum: [LLC, JSC, IP, other]
            tax_id:
              type: string
            bank_account:
              type: string
            bank_name:
              type: string
            mfo:
              type: string
            legal_address:
              type: string
            company_documents:
              type: array
              items:
                type: string
            chosen_tier:
              type: string
    responses:
      201:
        description: Activation request stored
      400:
        description: Invalid legal form or unknown tier
    """
    partner = request.user.partner
    if partner is None:
        return jsonify({"error": "Partner profile not found"}), 400
    data = request.get_json(silent=True) or {}
    tier = current_catalog().get_tier_config(data.get("chosen_tier"))
    legal_form = data.get("legal_form")
    if legal_form is not None and legal_form not in LEGAL_FORMS:
        raise ValidationError(f"'legal_form' must be one of: {', '.join(LEGAL_FORMS)}")
    documents = data.get("company_documents") or []
    if not isinstance(documents, list):
        raise ValidationError("'company_documents' must be a list")

    activation = PartnerActivation(
        partner_id=partner.id,
        company_name=data.get("company_name"),
        legal_form=legal_form,
        tax_id=data.get("tax_id"),
        bank_account=data.get("bank_account"),
        bank_name=data.get("bank_name"),
        mfo=data.get("mfo"),
        legal_address=data.get("legal_address"),
        company_documents=documents,
        chosen_tier=tier.tier_id,
    )
    db.session.add(activation)
    db.session.flush()
    log_activity("activation.submit", details={"activation_id": activation.id, "tier": tier.tier_id})
    db.session.commit()
    return jsonify(_serialize(activation)), 201


@bp.route("/admin/partner-activation-requests", methods=["GET"])
@token_required("admin")
def list_activations():
    """List all activation requests.

    ---
    tags:
      - Activations
    responses:
      200:
        description: Activation requests, newest first
    """
    activations = PartnerActivation.query.order_by(PartnerActivation.created_at.desc()).all()
    return jsonify([_serialize(a) for a in activations])


@bp.route("/admin/partner-activation-requests/<int:partner_id>", methods=["GET"])
@token_required("admin")
def list_partner_activations(partner_id):
    """Activation requests submitted by one partner.

    ---
    tags:
      - Activations
    responses:
      200:
        description: Activation requests of the partner
    """
    activations = (
        PartnerActivation.query.filter_by(partner_id=partner_id)
        .order_by(PartnerActivation.created_at.desc())
        .all()
    )
    return jsonify([_serialize(a) for a in activations])


@bp.route("/admin/partner-activation-requests/<int:activation_id>/approve", methods=["POST"])
@token_required("admin")
def approve_activation(activation_id):
    """Approve an activation and move the partner onto the chosen tier.

    ---
    tags:
      - Activations
    responses:
      200:
        description: Partner activated
      409:
        description: Activation already decided
    """
    activation = db.get_or_404(PartnerActivation, activation_id)
    conflict = _pending_or_409(activation)
    if conflict:
        return conflict

    tier = current_catalog().get_tier_config(activation.chosen_tier)
    partner = activation.partner
    apply_tier(partner, tier)
    if activation.company_name:
        partner.business_name = activation.company_name
    partner.user.is_approved = True
    activation.status = "approved"
    log_activity(
        "activation.approve",
        details={"activation_id": activation.id, "partner_id": partner.id, "tier": tier.tier_id},
    )
    db.session.commit()
    logger.info("Activation %s approved, partner %s on tier %s", activation.id, partner.id, tier.tier_id)
    return jsonify(_serialize(activation))


@bp.route("/admin/partner-activation-requests/<int:activation_id>/reject", methods=["POST"])
@token_required("admin")
def reject_activation(activation_id):
    """Reject an activation request.

    ---
    tags:
      - Activations
    responses:
      200:
        description: Activation rejected
      400:
        description: Reason missing
      409:
        description: Activation already decided
    """
    activation = db.get_or_404(PartnerActivation, activation_id)
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip()
    if not reason:
        return jsonify({"error": "A rejection reason is required"}), 400
    conflict = _pending_or_409(activation)
    if conflict:
        return conflict
    activation.status = "rejected"
    activation.rejection_reason = reason
    log_activity("activation.reject", details={"activation_id": activation.id})
    db.session.commit()
    return jsonify(_serialize(activation))
