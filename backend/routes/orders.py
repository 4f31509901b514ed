"""Customer orders against warehouse stock."""

import logging

from flask import Blueprint, jsonify, request

from models import Order, Product, db
from utils.activity import log_activity
from utils.auth import can_access_partner, is_admin, token_required
from utils.partners import record_delivery
from utils.validation import ValidationError, parse_number, require_fields
from utils.workflow import ORDER_TRANSITIONS, check_transition

logger = logging.getLogger(__name__)

bp = Blueprint("orders", __name__)


def _serialize(o: Order) -> dict:
    return {
        "id": o.id,
        "partner_id": o.partner_id,
        "product_id": o.product_id,
        "product_name": o.product.name if o.product else None,
        "customer_name": o.customer_name,
        "quantity": o.quantity,
        "total_amount": o.total_amount,
        "status": o.status,
        "created_at": o.created_at.isoformat() if o.created_at else None,
    }


@bp.route("/orders", methods=["POST"])
@token_required()
def create_order():
    """Create an order and reserve the stock.

    ---
    tags:
      - Orders
    consumes:
      - application/json
    parameters:
      - in: body
        name: payload
        schema:
          type: object
          required: [product_id, customer_name, quantity]
          properties:
            product_id:
              type: integer
            customer_name:
              type: string
            quantity:
              type: integer
            total_amount:
              type: number
    responses:
      201:
        description: Order created
      400:
        description: Invalid payload or unknown product
      403:
        description: Product belongs to another partner
      409:
        description: Not enough available stock
    """
    data = request.get_json(silent=True) or {}
    require_fields(data, ("product_id", "customer_name", "quantity"))
    product = db.session.get(Product, parse_number(data, "product_id", integer=True))
    if product is None:
        raise ValidationError("Product not found")
    if not can_access_partner(request.user, product.partner_id):
        return jsonify({"error": "Access denied"}), 403

    quantity = parse_number(data, "quantity", integer=True, minimum=1)
    available = product.stock_quantity - product.reserved_quantity
    if quantity > available:
        return jsonify({"error": "Not enough stock", "available": available}), 409

    total = parse_number(data, "total_amount", minimum=0, required=False)
    order = Order(
        partner_id=product.partner_id,
        product_id=product.id,
        customer_name=data["customer_name"],
        quantity=quantity,
        total_amount=total if total is not None else quantity * product.price,
    )
    product.reserved_quantity += quantity
    db.session.add(order)
    db.session.flush()
    log_activity("order.create", details={"order_id": order.id, "quantity": quantity})
    db.session.commit()
    return jsonify(_serialize(order)), 201


@bp.route("/orders", methods=["GET"])
@token_required()
def list_orders():
    """List orders: all for admins, own for partners.

    ---
    tags:
      - Orders
    responses:
      200:
        description: Orders, newest first
    """
    user = request.user
    query = Order.query
    if not is_admin(user):
        if user.partner is None:
            return jsonify([])
        query = query.filter_by(partner_id=user.partner.id)
    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
    return jsonify([_serialize(o) for o in orders])


@bp.route("/orders/partner/<int:partner_id>", methods=["GET"])
@token_required()
def list_partner_orders(partner_id):
    """Orders of one partner.

    ---
    tags:
      - Orders
    responses:
      200:
        description: Orders of the partner
      403:
        description: Partner users can only list their own orders
    """
    if not can_access_partner(request.user, partner_id):
        return jsonify({"error": "Access denied"}), 403
    orders = (
        Order.query.filter_by(partner_id=partner_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return jsonify([_serialize(o) for o in orders])


def _deliver(order: Order) -> None:
    product = order.product
    product.reserved_quantity -= order.quantity
    product.stock_quantity -= order.quantity
    product.sold_quantity += order.quantity

    record_delivery(
        order.partner,
        amount=order.total_amount,
        cost=(product.cost_price or 0) * order.quantity,
        units=order.quantity,
    )


@bp.route("/orders/<int:order_id>/status", methods=["POST"])
@token_required("admin")
def update_order_status(order_id):
    """Advance an order through processing, shipping and delivery.

    ---
    tags:
      - Orders
    parameters:
      - in: body
        name: payload
        schema:
          type: object
          required: [status]
          properties:
            status:
              type: string
              enum: [processing, shipped, delivered, cancelled]
    responses:
      200:
        description: Order updated
      400:
        description: Unknown status
      409:
        description: Transition not allowed from the current status
    """
    order = db.get_or_404(Order, order_id)
    data = request.get_json(silent=True) or {}
    target = data.get("status")
    check_transition(ORDER_TRANSITIONS, order.status, target)

    if target == "delivered":
        _deliver(order)
    elif target == "cancelled":
        order.product.reserved_quantity -= order.quantity

    previous = order.status
    order.status = target
    log_activity("order.status", details={"order_id": order.id, "from": previous, "to": target})
    db.session.commit()
    logger.info("Order %s: %s -> %s", order.id, previous, target)
    return jsonify(_serialize(order))
