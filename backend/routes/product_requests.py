"""Product fulfillment requests: partner submission and admin review workflow."""

import logging
import uuid
from datetime import datetime

from flask import Blueprint, jsonify, request

from models import Product, ProductRequest, db
from utils.activity import log_activity
from utils.auth import is_admin, token_required
from utils.notifications import send_email
from utils.partners import monthly_request_count
from utils.pricing import current_catalog
from utils.validation import parse_choice, parse_number, require_fields
from utils.workflow import PRODUCT_REQUEST_TRANSITIONS, check_transition

logger = logging.getLogger(__name__)

bp = Blueprint("product_requests", __name__)

URGENCY_LEVELS = ("low", "normal", "high", "urgent")


def _serialize(pr: ProductRequest) -> dict:
    return {
        "id": pr.id,
        "partner_id": pr.partner_id,
        "product_id": pr.product_id,
        "product_name": pr.product_name,
        "description": pr.description,
        "expected_quantity": pr.expected_quantity,
        "estimated_price": pr.estimated_price,
        "supplier_info": pr.supplier_info,
        "urgency_level": pr.urgency_level,
        "admin_notes": pr.admin_notes,
        "final_quantity": pr.final_quantity,
        "final_price": pr.final_price,
        "status": pr.status,
        "reviewed_by": pr.reviewed_by,
        "approved_at": pr.approved_at.isoformat() if pr.approved_at else None,
        "created_at": pr.created_at.isoformat() if pr.created_at else None,
    }


def _move(pr: ProductRequest, target: str) -> None:
    check_transition(PRODUCT_REQUEST_TRANSITIONS, pr.status, target)
    logger.info("Product request %s: %s -> %s", pr.id, pr.status, target)
    pr.status = target


@bp.route("/product-requests", methods=["POST"])
@token_required("partner")
def create_product_request():
    """Ask the warehouse to take a new product into fulfillment.

    ---
    tags:
      - Product requests
    consumes:
      - application/json
    parameters:
      - in: body
        name: payload
        schema:
          type: object
          required: [product_name, expected_quantity]
          properties:
            product_name:
              type: string
            description:
              type: string
            expected_quantity:
              type: integer
            estimated_price:
              type: number
            supplier_info:
              type: string
            urgency_level:
              type: string
              enum: [low, normal, high, urgent]
    responses:
      201:
        description: Request stored as pending
      400:
        description: Invalid payload
      409:
        description: Monthly request quota of the partner's tier is used up
    """
    partner = request.user.partner
    if partner is None:
        return jsonify({"error": "Partner profile not found"}), 400
    data = request.get_json(silent=True) or {}
    require_fields(data, ("product_name", "expected_quantity"))

    tier = current_catalog().get_tier_config(partner.pricing_tier)
    used = monthly_request_count(partner.id)
    if tier.request_quota_reached(used):
        return (
            jsonify(
                {
                    "error": "Monthly product request limit reached",
                    "limit": tier.max_product_requests,
                    "used": used,
                }
            ),
            409,
        )

    pr = ProductRequest(
        partner_id=partner.id,
        product_name=data["product_name"],
        description=data.get("description"),
        expected_quantity=parse_number(data, "expected_quantity", integer=True, minimum=1),
        estimated_price=parse_number(data, "estimated_price", minimum=0, required=False),
        supplier_info=data.get("supplier_info"),
        urgency_level=parse_choice(data, "urgency_level", URGENCY_LEVELS, default="normal"),
    )
    db.session.add(pr)
    db.session.flush()
    log_activity("product_request.submit", details={"request_id": pr.id})
    db.session.commit()
    return jsonify(_serialize(pr)), 201


@bp.route("/product-requests", methods=["GET"])
@token_required()
def list_product_requests():
    """List product requests: all for admins, own for partners.

    ---
    tags:
      - Product requests
    parameters:
      - in: query
        name: status
        type: string
    responses:
      200:
        description: Product requests, newest first
    """
    user = request.user
    query = ProductRequest.query
    if not is_admin(user):
        if user.partner is None:
            return jsonify([])
        query = query.filter_by(partner_id=user.partner.id)
    status = request.args.get("status")
    if status:
        query = query.filter_by(status=status)
    items = query.order_by(ProductRequest.created_at.desc(), ProductRequest.id.desc()).all()
    return jsonify([_serialize(pr) for pr in items])


@bp.route("/admin/product-requests/<int:request_id>/review", methods=["POST"])
@token_required("admin")
def review_product_request(request_id):
    """Take a request under review, optionally proposing changes to the partner.

    When a final quantity or price differing from the partner's figures is
    given, the request waits for the partner's confirmation.

    ---
    tags:
      - Product requests
    responses:
      200:
        description: Request updated
      409:
        description: Transition not allowed from the current status
    """
    pr = db.get_or_404(ProductRequest, request_id)
    data = request.get_json(silent=True) or {}
    final_quantity = parse_number(data, "final_quantity", integer=True, minimum=1, required=False)
    final_price = parse_number(data, "final_price", minimum=0, required=False)

    changed = (final_quantity is not None and final_quantity != pr.expected_quantity) or (
        final_price is not None and final_price != pr.estimated_price
    )
    _move(pr, "needs_partner_confirmation" if changed else "under_review")
    if final_quantity is not None:
        pr.final_quantity = final_quantity
    if final_price is not None:
        pr.final_price = final_price
    if data.get("admin_notes"):
        pr.admin_notes = data["admin_notes"]
    pr.reviewed_by = request.user.id
    log_activity("product_request.review", details={"request_id": pr.id, "status": pr.status})
    db.session.commit()
    return jsonify(_serialize(pr))


@bp.route("/product-requests/<int:request_id>/confirm", methods=["POST"])
@token_required("partner")
def confirm_product_request(request_id):
    """Partner accepts the changes proposed by the admin.

    ---
    tags:
      - Product requests
    responses:
      200:
        description: Request approved
      403:
        description: Request belongs to another partner
      409:
        description: Request is not waiting for confirmation
    """
    pr = db.get_or_404(ProductRequest, request_id)
    partner = request.user.partner
    if partner is None or partner.id != pr.partner_id:
        return jsonify({"error": "Access denied"}), 403
    if pr.status != "needs_partner_confirmation":
        return jsonify({"error": "Request is not waiting for confirmation", "status": pr.status}), 409
    _move(pr, "approved")
    pr.approved_at = datetime.utcnow()
    log_activity("product_request.confirm", details={"request_id": pr.id})
    db.session.commit()
    return jsonify(_serialize(pr))


def _stock_product(pr: ProductRequest) -> Product:
    product = Product(
        name=pr.product_name,
        description=pr.description,
        sku=f"SKU-{pr.id}-{uuid.uuid4().hex[:8].upper()}",
        price=pr.final_price if pr.final_price is not None else (pr.estimated_price or 0),
        stock_quantity=pr.final_quantity if pr.final_quantity is not None else pr.expected_quantity,
        partner_id=pr.partner_id,
    )
    db.session.add(product)
    db.session.flush()
    pr.product_id = product.id
    _move(pr, "in_mysklad")
    return product


@bp.route("/admin/product-requests/<int:request_id>/approve", methods=["POST"])
@token_required("admin")
def approve_product_request(request_id):
    """Approve a request and put the product into warehouse stock.

    ---
    tags:
      - Product requests
    responses:
      200:
        description: Request approved and product created
      409:
        description: Transition not allowed from the current status
    """
    pr = db.get_or_404(ProductRequest, request_id)
    if pr.status != "approved":
        _move(pr, "approved")
        pr.approved_at = datetime.utcnow()
        pr.reviewed_by = request.user.id
    product = _stock_product(pr)
    log_activity(
        "product_request.approve", details={"request_id": pr.id, "product_id": product.id}
    )
    db.session.commit()
    send_email(
        to=pr.partner.user.email or pr.partner.user.username,
        subject="Fulfillment request approved",
        text=f"Product: {pr.product_name}",
    )
    return jsonify({"request": _serialize(pr), "product_id": product.id, "sku": product.sku})


@bp.route("/admin/product-requests/<int:request_id>/reject", methods=["POST"])
@token_required("admin")
def reject_product_request(request_id):
    """Reject a request with a reason.

    ---
    tags:
      - Product requests
    responses:
      200:
        description: Request rejected
      400:
        description: Reason missing
      409:
        description: Transition not allowed from the current status
    """
    pr = db.get_or_404(ProductRequest, request_id)
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip()
    if not reason:
        return jsonify({"error": "A rejection reason is required"}), 400
    _move(pr, "rejected")
    pr.admin_notes = reason
    pr.reviewed_by = request.user.id
    log_activity("product_request.reject", details={"request_id": pr.id})
    db.session.commit()
    return jsonify(_serialize(pr))
