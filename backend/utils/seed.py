"""Bootstrap data for a fresh database."""

import logging
import os

from models import User, db

logger = logging.getLogger(__name__)


def ensure_default_admin(username=None, password=None, email=None):
    """Create the first admin account unless one already exists.

    Returns the existing or newly created admin user.
    """
    existing = User.query.filter_by(role="admin").first()
    if existing:
        return existing

    username = username or os.getenv("DEFAULT_ADMIN_USERNAME", "admin")
    password = password or os.getenv("DEFAULT_ADMIN_PASSWORD")
    email = email or os.getenv("DEFAULT_ADMIN_EMAIL")
    if not password:
        raise RuntimeError("DEFAULT_ADMIN_PASSWORD must be set to create the admin account")

    admin = User(username=username, email=email, role="admin", is_approved=True)
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    logger.info("Created default admin account %s", username)
    return admin
