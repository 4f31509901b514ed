import os
import datetime
import jwt
from flask import request, jsonify
from functools import wraps
from models import User, db

SECRET_KEY = os.getenv("JWT_SECRET", "secret-key")
TOKEN_EXPIRATION = int(os.getenv("JWT_EXPIRE", "3600"))
REFRESH_TOKEN_EXPIRATION = int(os.getenv("JWT_REFRESH_EXPIRE", "604800"))


def _expiry(seconds: int) -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(seconds=seconds)


def generate_access_token(user: User) -> str:
    payload = {
        "user_id": user.id,
        "role": user.role,
        "type": "access",
        "exp": _expiry(TOKEN_EXPIRATION),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm="HS256")


def generate_refresh_token(user: User) -> str:
    payload = {
        "user_id": user.id,
        "type": "refresh",
        "exp": _expiry(REFRESH_TOKEN_EXPIRATION),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm="HS256")


def decode_token(token: str):
    payload = jwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("Invalid token type")
    return payload


def decode_refresh_token(token: str):
    payload = jwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    if payload.get("type") != "refresh":
        raise jwt.InvalidTokenError("Invalid token type")
    return payload


def token_required(role: str | None = None):
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            auth_header = request.headers.get("Authorization", "")
            if not auth_header.startswith("Bearer "):
                return jsonify({"error": "Token missing"}), 401
            token = auth_header.split(" ", 1)[1]
            try:
                data = decode_token(token)
            except jwt.ExpiredSignatureError:
                return jsonify({"error": "Token expired"}), 401
            except jwt.InvalidTokenError:
                return jsonify({"error": "Invalid token"}), 401
            user = db.session.get(User, data.get("user_id"))
            if not user:
                return jsonify({"error": "User not found"}), 401
            if role and user.role != role:
                return jsonify({"error": "Access denied"}), 403
            request.user = user
            return f(*args, **kwargs)

        return wrapper

    return decorator


def is_admin(user: User) -> bool:
    return user is not None and user.role == "admin"


def can_access_partner(user: User, partner_id: int) -> bool:
    """Admins see every partner, a partner user only its own profile."""
    if is_admin(user):
        return True
    return user.partner is not None and user.partner.id == partner_id
