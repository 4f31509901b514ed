from flask import Blueprint, jsonify

from utils.pricing import current_catalog

bp = Blueprint("main", __name__)


@bp.route("/")
def index():
    """Health check reporting the loaded pricing tiers.

    ---
    tags:
      - Main
    responses:
      200:
        description: API is reachable
    """
    return jsonify({"status": "ok", "tiers": list(current_catalog().tier_ids)})
