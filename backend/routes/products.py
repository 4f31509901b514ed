from flask import Blueprint, jsonify, request

from models import Partner, Product, db
from utils.activity import log_activity
from utils.auth import can_access_partner, is_admin, token_required
from utils.validation import ValidationError, parse_number, require_fields

bp = Blueprint("products", __name__)


def _serialize(p: Product) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "sku": p.sku,
        "price": p.price,
        "cost_price": p.cost_price,
        "stock_quantity": p.stock_quantity,
        "reserved_quantity": p.reserved_quantity,
        "available_quantity": p.stock_quantity - p.reserved_quantity,
        "sold_quantity": p.sold_quantity,
        "low_stock_threshold": p.low_stock_threshold,
        "uzum_market_sku": p.uzum_market_sku,
        "yandex_market_sku": p.yandex_market_sku,
        "partner_id": p.partner_id,
        "is_active": p.is_active,
    }


@bp.route("/products", methods=["POST"])
@token_required("admin")
def create_product():
    """Register a product in warehouse stock.

    ---
    tags:
      - Products
    consumes:
      - application/json
    parameters:
      - in: body
        name: payload
        schema:
          type: object
          required: [name, sku, price, partner_id]
    responses:
      201:
        description: Product created
      400:
        description: Missing fields, unknown partner or duplicate SKU
    """
    data = request.get_json(silent=True) or {}
    require_fields(data, ("name", "sku", "price", "partner_id"))
    partner_id = parse_number(data, "partner_id", integer=True)
    if db.session.get(Partner, partner_id) is None:
        raise ValidationError("Partner not found")
    if Product.query.filter_by(sku=data["sku"]).first():
        raise ValidationError("SKU already exists")

    product = Product(
        name=data["name"],
        description=data.get("description"),
        sku=data["sku"],
        price=parse_number(data, "price", minimum=0),
        cost_price=parse_number(data, "cost_price", minimum=0, required=False),
        stock_quantity=parse_number(data, "stock_quantity", integer=True, minimum=0, default=0),
        low_stock_threshold=parse_number(
            data, "low_stock_threshold", integer=True, minimum=0, default=10
        ),
        uzum_market_sku=data.get("uzum_market_sku"),
        yandex_market_sku=data.get("yandex_market_sku"),
        partner_id=partner_id,
    )
    db.session.add(product)
    db.session.flush()
    log_activity("product.create", details={"product_id": product.id, "sku": product.sku})
    db.session.commit()
    return jsonify(_serialize(product)), 201


@bp.route("/products", methods=["GET"])
@token_required()
def list_products():
    """List products: every product for admins, own products for partners.

    ---
    tags:
      - Products
    responses:
      200:
        description: Products
    """
    user = request.user
    query = Product.query
    if not is_admin(user):
        if user.partner is None:
            return jsonify([])
        query = query.filter_by(partner_id=user.partner.id)
    return jsonify([_serialize(p) for p in query.order_by(Product.id).all()])


@bp.route("/products/partner/<int:partner_id>", methods=["GET"])
@token_required()
def list_partner_products(partner_id):
    """Products belonging to one partner.

    ---
    tags:
      - Products
    responses:
      200:
        description: Products of the partner
      403:
        description: Partner users can only list their own products
    """
    if not can_access_partner(request.user, partner_id):
        return jsonify({"error": "Access denied"}), 403
    products = Product.query.filter_by(partner_id=partner_id).order_by(Product.id).all()
    return jsonify([_serialize(p) for p in products])


@bp.route("/admin/inventory/low-stock", methods=["GET"])
@token_required("admin")
def low_stock():
    """Products whose stock is at or below their alert threshold.

    ---
    tags:
      - Products
    responses:
      200:
        description: Low stock products
    """
    products = (
        Product.query.filter(Product.stock_quantity <= Product.low_stock_threshold)
        .order_by(Product.stock_quantity)
        .all()
    )
    return jsonify([_serialize(p) for p in products])
