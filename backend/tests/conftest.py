import os
import tempfile

from cryptography.fernet import Fernet

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["MARKETPLACE_ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="fulfillment-logs-"))

# Map PostgreSQL JSONB to SQLite-compatible JSON before importing models
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.sqlite.base import SQLiteTypeCompiler

_orig_process = SQLiteTypeCompiler.process


def _patched_process(self, type_, **kw):
    if isinstance(type_, JSONB):
        return self.visit_JSON(type_, **kw)
    return _orig_process(self, type_, **kw)


SQLiteTypeCompiler.process = _patched_process

# Force Werkzeug to use pbkdf2, scrypt hashing slows the suite down
import werkzeug.security as _ws

_orig_gen = _ws.generate_password_hash


def _compat_gen(password, method="pbkdf2:sha256", salt_length=16):
    return _orig_gen(password, method=method, salt_length=salt_length)


_ws.generate_password_hash = _compat_gen

import pytest
from app import create_app
from models import db as _db, Partner, User
from utils.partners import apply_tier
from utils.pricing import TierCatalog


@pytest.fixture(scope="session")
def app():
    application = create_app()
    application.config["TESTING"] = True
    with application.app_context():
        _db.create_all()
    yield application


@pytest.fixture(autouse=True)
def _push_ctx(app):
    """Push an app context for every test and clean up after."""
    ctx = app.app_context()
    ctx.push()
    yield
    _db.session.rollback()
    # clean all rows
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def catalog():
    return TierCatalog.default()


@pytest.fixture()
def admin_user():
    user = User(
        username="admin_test",
        email="admin@test.com",
        role="admin",
        is_approved=True,
    )
    user.set_password("password123")
    _db.session.add(user)
    _db.session.commit()
    return user


def _make_partner(username, tier_id, catalog):
    user = User(username=username, email=f"{username}@test.com", role="partner")
    user.set_password("password123")
    partner = Partner(user=user, business_name=f"{username} LLC")
    apply_tier(partner, catalog.get_tier_config(tier_id))
    _db.session.add_all([user, partner])
    _db.session.commit()
    return partner


@pytest.fixture()
def partner(catalog):
    return _make_partner("partner_test", "basic", catalog)


@pytest.fixture()
def other_partner(catalog):
    return _make_partner("other_partner", "professional", catalog)


@pytest.fixture()
def partner_user(partner):
    return partner.user


def _headers(user):
    from utils.auth import generate_access_token

    token = generate_access_token(user)
    return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}


@pytest.fixture()
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture()
def partner_headers(partner):
    return _headers(partner.user)


@pytest.fixture()
def other_partner_headers(other_partner):
    return _headers(other_partner.user)
