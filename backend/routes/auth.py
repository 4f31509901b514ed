from flask import Blueprint, request, jsonify
import jwt
from models import User, db
from utils.activity import log_activity
from utils.auth import (
    decode_refresh_token,
    generate_access_token,
    generate_refresh_token,
    token_required,
)
from utils.partners import serialize_partner

bp = Blueprint("auth", __name__)


def _token_response(user: User):
    return jsonify(
        {
            "token": generate_access_token(user),
            "refresh_token": generate_refresh_token(user),
            "role": user.role,
        }
    )


@bp.route("/login", methods=["POST"])
def login():
    """Authenticate a user and return access tokens.

    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: credentials
        schema:
          type: object
          required:
            - login
            - password
          properties:
            login:
              type: string
              description: Username or email
            password:
              type: string
    responses:
      200:
        description: Tokens generated for the authenticated user
      400:
        description: Missing credentials in the request body
      401:
        description: Invalid login or password
    """
    data = request.get_json(silent=True) or {}
    login_value = data.get("login") or data.get("username") or data.get("email")
    password = data.get("password")
    if not login_value or not password:
        return jsonify({"error": "Login and password are required"}), 400

    user = User.query.filter(
        (User.username == login_value) | (User.email == login_value)
    ).first()
    if not user or not user.check_password(password):
        return jsonify({"error": "Invalid credentials"}), 401

    log_activity("user.login", details={"login": login_value}, user_id=user.id, commit=True)
    return _token_response(user)


@bp.route("/refresh", methods=["POST"])
def refresh():
    """Exchange a refresh token for a new access token.

    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: payload
        schema:
          type: object
          required:
            - refresh_token
          properties:
            refresh_token:
              type: string
    responses:
      200:
        description: New access token generated from the provided refresh token
      400:
        description: Missing refresh token in the request body
      401:
        description: Expired or invalid refresh token
    """
    data = request.get_json(silent=True) or {}
    token = data.get("refresh_token")
    if not token:
        return jsonify({"error": "Refresh token required"}), 400
    try:
        payload = decode_refresh_token(token)
    except jwt.ExpiredSignatureError:
        return jsonify({"error": "Token expired"}), 401
    except jwt.InvalidTokenError:
        return jsonify({"error": "Invalid token"}), 401

    user = db.session.get(User, payload.get("user_id"))
    if not user:
        return jsonify({"error": "User not found"}), 401
    return _token_response(user)


@bp.route("/me", methods=["GET"])
@token_required()
def me():
    """Return the authenticated user and, for partners, their profile.

    ---
    tags:
      - Auth
    responses:
      200:
        description: Current user
      401:
        description: Missing or invalid token
    """
    user = request.user
    return jsonify(
        {
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "role": user.role,
            "is_approved": user.is_approved,
            "partner": serialize_partner(user.partner) if user.partner else None,
        }
    )
