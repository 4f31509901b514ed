"""Activity log browsing for admins."""

from flask import Blueprint, jsonify, request

from models import ActivityLog, User
from utils.auth import token_required

bp = Blueprint("logs", __name__)


@bp.route("/logs/activity", methods=["GET"])
@token_required("admin")
def list_activity_logs():
    """Return paginated activity logs, newest first.

    ---
    tags:
      - Logs
    parameters:
      - in: query
        name: page
        type: integer
      - in: query
        name: per_page
        type: integer
      - in: query
        name: category
        type: string
      - in: query
        name: action
        type: string
    responses:
      200:
        description: Page of activity entries with the total count
    """
    page = max(request.args.get("page", 1, type=int), 1)
    per_page = min(max(request.args.get("per_page", 50, type=int), 1), 100)
    category = request.args.get("category", type=str)
    action = request.args.get("action", type=str)

    query = ActivityLog.query
    if category:
        query = query.filter_by(category=category)
    if action:
        query = query.filter(ActivityLog.action.ilike(f"%{action}%"))

    query = query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
    total = query.count()
    items = (
        query.outerjoin(User, ActivityLog.user_id == User.id)
        .add_columns(User.username)
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    results = [
        {
            "id": entry.id,
            "timestamp": entry.timestamp.isoformat() if entry.timestamp else None,
            "action": entry.action,
            "category": entry.category,
            "user_id": entry.user_id,
            "username": username,
            "details": entry.details,
            "ip_address": entry.ip_address,
        }
        for entry, username in items
    ]

    return jsonify({"items": results, "total": total, "page": page, "per_page": per_page})
