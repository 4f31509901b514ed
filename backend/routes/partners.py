"""Partner onboarding: registration requests, partner profiles and tiers."""

import logging

from flask import Blueprint, jsonify, request

from models import Partner, PartnerRegistrationRequest, User, db
from utils.activity import log_activity
from utils.auth import can_access_partner, token_required
from utils.notifications import send_sms
from utils.partners import apply_tier, fee_summary, serialize_partner
from utils.pricing import current_catalog
from utils.validation import ValidationError, parse_number, parse_text, require_fields

logger = logging.getLogger(__name__)

bp = Blueprint("partners", __name__)

DEFAULT_TIER = "basic"


def _serialize_registration(reg: PartnerRegistrationRequest) -> dict:
    return {
        "id": reg.id,
        "login": reg.login,
        "phone": reg.phone,
        "address": reg.address,
        "product_category": reg.product_category,
        "investment_amount": reg.investment_amount,
        "product_quantity": reg.product_quantity,
        "status": reg.status,
        "rejection_reason": reg.rejection_reason,
        "partner_id": reg.partner_id,
        "created_at": reg.created_at.isoformat() if reg.created_at else None,
    }


@bp.route("/partner-registration-requests", methods=["POST"])
def create_registration():
    """Submit a partner application from the landing page.

    ---
    tags:
      - Partners
    consumes:
      - application/json
    parameters:
      - in: body
        name: payload
        schema:
          type: object
          required: [login, password, phone, address, product_category,
                     investment_amount, product_quantity]
    responses:
      201:
        description: Application stored with status pending
      400:
        description: Missing fields or login already taken
    """
    data = request.get_json(silent=True) or {}
    require_fields(
        data,
        (
            "login",
            "password",
            "phone",
            "address",
            "product_category",
            "investment_amount",
            "product_quantity",
        ),
    )
    login = parse_text(data, "login")
    password = parse_text(data, "password")
    if (
        PartnerRegistrationRequest.query.filter_by(login=login).first()
        or User.query.filter_by(username=login).first()
    ):
        return jsonify({"error": "This login is already taken"}), 400

    registration = PartnerRegistrationRequest(
        login=login,
        phone=parse_text(data, "phone"),
        address=parse_text(data, "address"),
        product_category=parse_text(data, "product_category"),
        investment_amount=parse_number(data, "investment_amount", minimum=0),
        product_quantity=parse_number(data, "product_quantity", integer=True, minimum=1),
    )
    registration.set_password(password)
    db.session.add(registration)
    db.session.flush()
    log_activity("registration.submit", details={"login": login})
    db.session.commit()
    logger.info("Partner registration %s submitted", registration.id)
    return jsonify(_serialize_registration(registration)), 201


@bp.route("/partner-registration-requests", methods=["GET"])
@token_required("admin")
def list_registrations():
    """List partner applications, newest first.

    ---
    tags:
      - Partners
    parameters:
      - in: query
        name: status
        type: string
    responses:
      200:
        description: Applications
    """
    query = PartnerRegistrationRequest.query
    status = request.args.get("status")
    if status:
        query = query.filter_by(status=status)
    registrations = query.order_by(PartnerRegistrationRequest.created_at.desc()).all()
    return jsonify([_serialize_registration(r) for r in registrations])


@bp.route("/partner-registration-requests/<int:registration_id>/approve", methods=["POST"])
@token_required("admin")
def approve_registration(registration_id):
    """Approve an application and create the partner account on the basic tier.

    ---
    tags:
      - Partners
    responses:
      200:
        description: Partner created
      409:
        description: Application already decided
    """
    registration = db.get_or_404(PartnerRegistrationRequest, registration_id)
    if registration.status != "pending":
        return jsonify({"error": f"Registration is already {registration.status}"}), 409
    if User.query.filter_by(username=registration.login).first():
        return jsonify({"error": "A user with this login already exists"}), 409

    tier = current_catalog().get_tier_config(DEFAULT_TIER)
    user = User(
        username=registration.login,
        password_hash=registration.password_hash,
        role="partner",
        is_approved=True,
    )
    partner = Partner(
        user=user,
        business_name=registration.login,
        description=f"Partner: {registration.login}",
    )
    apply_tier(partner, tier)
    db.session.add_all([user, partner])
    db.session.flush()

    registration.status = "approved"
    registration.partner_id = partner.id
    log_activity(
        "registration.approve",
        details={"registration_id": registration.id, "partner_id": partner.id},
    )
    db.session.commit()
    logger.info("Registration %s approved as partner %s", registration.id, partner.id)
    send_sms(registration.phone, "Your partner application has been approved.")
    return jsonify({"status": "approved", "partner": serialize_partner(partner)})


@bp.route("/partner-registration-requests/<int:registration_id>/reject", methods=["POST"])
@token_required("admin")
def reject_registration(registration_id):
    """Reject an application with a reason.

    ---
    tags:
      - Partners
    responses:
      200:
        description: Application rejected
      400:
        description: Reason missing
      409:
        description: Application already decided
    """
    registration = db.get_or_404(PartnerRegistrationRequest, registration_id)
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip()
    if not reason:
        return jsonify({"error": "A rejection reason is required"}), 400
    if registration.status != "pending":
        return jsonify({"error": f"Registration is already {registration.status}"}), 409
    registration.status = "rejected"
    registration.rejection_reason = reason
    log_activity("registration.reject", details={"registration_id": registration.id})
    db.session.commit()
    return jsonify({"status": "rejected"})


@bp.route("/partners", methods=["GET"])
@token_required("admin")
def list_partners():
    """List partners.

    ---
    tags:
      - Partners
    responses:
      200:
        description: Partners with their tier entitlements
    """
    partners = Partner.query.order_by(Partner.id).all()
    return jsonify([serialize_partner(p) for p in partners])


@bp.route("/partners", methods=["POST"])
@token_required("admin")
def create_partner():
    """Attach a partner profile to an existing user.

    ---
    tags:
      - Partners
    responses:
      201:
        description: Partner created
      400:
        description: Missing user or unknown tier
      409:
        description: The user already has a partner profile
    """
    data = request.get_json(silent=True) or {}
    require_fields(data, ("user_id",))
    user = db.session.get(User, parse_number(data, "user_id", integer=True))
    if user is None:
        raise ValidationError("User not found")
    if user.partner is not None:
        return jsonify({"error": "User already has a partner profile"}), 409

    tier = current_catalog().get_tier_config(data.get("pricing_tier", DEFAULT_TIER))
    partner = Partner(
        user=user,
        business_name=data.get("business_name"),
        description=data.get("description"),
    )
    apply_tier(partner, tier)
    user.role = "partner"
    db.session.add(partner)
    db.session.flush()
    log_activity("partner.create", details={"partner_id": partner.id, "tier": tier.tier_id})
    db.session.commit()
    return jsonify(serialize_partner(partner)), 201


@bp.route("/partners/<int:partner_id>", methods=["GET"])
@token_required("admin")
def get_partner(partner_id):
    """Return one partner.

    ---
    tags:
      - Partners
    responses:
      200:
        description: Partner
      404:
        description: Unknown partner
    """
    return jsonify(serialize_partner(db.get_or_404(Partner, partner_id)))


@bp.route("/partners/<int:partner_id>/tier", methods=["POST"])
@token_required("admin")
def update_partner_tier(partner_id):
    """Move a partner to another pricing tier.

    ---
    tags:
      - Partners
    parameters:
      - in: body
        name: payload
        schema:
          type: object
          required: [tier]
          properties:
            tier:
              type: string
    responses:
      200:
        description: Tier updated
      400:
        description: Unknown tier
    """
    partner = db.get_or_404(Partner, partner_id)
    data = request.get_json(silent=True) or {}
    tier = current_catalog().get_tier_config(data.get("tier"))
    previous = partner.pricing_tier
    apply_tier(partner, tier)
    log_activity(
        "partner.tier_change",
        details={"partner_id": partner.id, "from": previous, "to": tier.tier_id},
    )
    db.session.commit()
    logger.info("Partner %s moved from %s to %s", partner.id, previous, tier.tier_id)
    return jsonify(serialize_partner(partner))


@bp.route("/partners/<int:partner_id>/fee-summary", methods=["GET"])
@token_required()
def partner_fee_summary(partner_id):
    """Fulfillment fee for the partner's current month figures.

    ---
    tags:
      - Partners
    responses:
      200:
        description: Fee breakdown for monthly sales, cost and delivered units
      403:
        description: Partner users can only see their own summary
    """
    partner = db.get_or_404(Partner, partner_id)
    if not can_access_partner(request.user, partner.id):
        return jsonify({"error": "Access denied"}), 403
    return jsonify(fee_summary(partner, current_catalog()).to_dict())


@bp.route("/me/partner", methods=["GET"])
@token_required("partner")
def my_partner():
    """Profile of the authenticated partner.

    ---
    tags:
      - Partners
    responses:
      200:
        description: Partner profile
      404:
        description: The user has no partner profile yet
    """
    partner = request.user.partner
    if partner is None:
        return jsonify({"error": "Partner profile not found"}), 404
    return jsonify(serialize_partner(partner))
