"""Tier catalog and fulfillment fee calculator endpoints."""

from flask import Blueprint, jsonify, request

from utils.pricing import calculate_fulfillment, current_catalog
from utils.validation import parse_number

bp = Blueprint("pricing", __name__)


@bp.route("/pricing/tiers", methods=["GET"])
def list_tiers():
    """List every pricing tier with its fee schedule.

    ---
    tags:
      - Pricing
    responses:
      200:
        description: Tiers in catalog order; an unbounded bracket has a null threshold
    """
    return jsonify([tier.to_dict() for tier in current_catalog()])


@bp.route("/pricing/tiers/<tier_id>", methods=["GET"])
def get_tier(tier_id):
    """Return a single pricing tier.

    ---
    tags:
      - Pricing
    parameters:
      - in: path
        name: tier_id
        type: string
        required: true
    responses:
      200:
        description: Tier configuration
      400:
        description: Unknown tier identifier
    """
    return jsonify(current_catalog().get_tier_config(tier_id).to_dict())


@bp.route("/pricing/calculate", methods=["POST"])
def calculate():
    """Compute net profit, commission and fulfillment fee for a sale.

    ---
    tags:
      - Pricing
    consumes:
      - application/json
    parameters:
      - in: body
        name: payload
        schema:
          type: object
          required:
            - sales
            - cost_price
            - tier
          properties:
            sales:
              type: number
            cost_price:
              type: number
            unit_count:
              type: integer
              default: 1
            tier:
              type: string
              description: A tier id from GET /pricing/tiers
    responses:
      200:
        description: Fee breakdown; negative net profit is reported as a loss
      400:
        description: Missing or non-numeric figures, or unknown tier
    """
    data = request.get_json(silent=True) or {}
    sales = parse_number(data, "sales")
    cost_price = parse_number(data, "cost_price")
    unit_count = parse_number(data, "unit_count", integer=True, minimum=0, default=1)
    tier = current_catalog().get_tier_config(data.get("tier"))

    quote = calculate_fulfillment(sales, cost_price, unit_count, tier)
    return jsonify(quote.to_dict())
