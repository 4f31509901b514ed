"""Audit trail of partner, fulfillment and marketplace actions."""

import logging

from flask import has_request_context, request

from models import ActivityLog, db

logger = logging.getLogger(__name__)

# action prefix -> category shown in the admin log filter
CATEGORIES = {
    "user": "auth",
    "registration": "onboarding",
    "activation": "onboarding",
    "partner": "partner",
    "product_request": "fulfillment",
    "product": "inventory",
    "order": "order",
    "marketplace": "marketplace",
}


def category_for(action: str) -> str:
    prefix = action.partition(".")[0]
    return CATEGORIES.get(prefix, prefix)


def _request_origin():
    """Authenticated user id and client address of the current request, if any."""
    if not has_request_context():
        return None, None
    user = getattr(request, "user", None)
    return (user.id if user is not None else None), request.remote_addr


def log_activity(action, details=None, user_id=None, commit=False):
    """Add an ``ActivityLog`` row for ``action``.

    The row joins the caller's transaction (flush only) unless ``commit`` is
    set, as the login endpoint does. Failures are logged and never abort the
    business action being audited.
    """
    try:
        request_user_id, ip_address = _request_origin()
        entry = ActivityLog(
            action=action,
            category=category_for(action),
            user_id=user_id if user_id is not None else request_user_id,
            details=details,
            ip_address=ip_address,
        )
        db.session.add(entry)
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    except Exception:
        logger.exception("Failed to record activity log for action=%s", action)
