"""Direct messages between partners and admins (REST; no live relay)."""

from flask import Blueprint, jsonify, request

from models import ChatMessage, User, db
from utils.auth import token_required
from utils.validation import ValidationError, parse_number, require_fields

bp = Blueprint("chat", __name__)


def _serialize(m: ChatMessage) -> dict:
    return {
        "id": m.id,
        "sender_id": m.sender_id,
        "sender": m.sender.username if m.sender else None,
        "receiver_id": m.receiver_id,
        "message": m.message,
        "is_read": m.is_read,
        "created_at": m.created_at.isoformat() if m.created_at else None,
    }


@bp.route("/chat/messages", methods=["POST"])
@token_required()
def send_message():
    """Send a message to another user.

    ---
    tags:
      - Chat
    parameters:
      - in: body
        name: payload
        schema:
          type: object
          required: [receiver_id, message]
    responses:
      201:
        description: Message stored
      400:
        description: Missing receiver or empty message
    """
    data = request.get_json(silent=True) or {}
    require_fields(data, ("receiver_id", "message"))
    receiver = db.session.get(User, parse_number(data, "receiver_id", integer=True))
    if receiver is None:
        raise ValidationError("Receiver not found")
    text = str(data["message"]).strip()
    if not text:
        raise ValidationError("Message is empty")

    message = ChatMessage(sender_id=request.user.id, receiver_id=receiver.id, message=text)
    db.session.add(message)
    db.session.commit()
    return jsonify(_serialize(message)), 201


@bp.route("/chat/messages/<int:user_id>", methods=["GET"])
@token_required()
def conversation(user_id):
    """Conversation between the current user and ``user_id``, oldest first.

    ---
    tags:
      - Chat
    responses:
      200:
        description: Messages
    """
    me = request.user.id
    messages = (
        ChatMessage.query.filter(
            ((ChatMessage.sender_id == me) & (ChatMessage.receiver_id == user_id))
            | ((ChatMessage.sender_id == user_id) & (ChatMessage.receiver_id == me))
        )
        .order_by(ChatMessage.created_at, ChatMessage.id)
        .all()
    )
    return jsonify([_serialize(m) for m in messages])


@bp.route("/chat/messages/<int:user_id>/read", methods=["POST"])
@token_required()
def mark_read(user_id):
    """Mark every message received from ``user_id`` as read.

    ---
    tags:
      - Chat
    responses:
      200:
        description: Number of messages updated
    """
    updated = ChatMessage.query.filter_by(
        sender_id=user_id, receiver_id=request.user.id, is_read=False
    ).update({"is_read": True})
    db.session.commit()
    return jsonify({"updated": updated})


@bp.route("/chat/unread", methods=["GET"])
@token_required()
def unread_count():
    """Count of unread messages for the current user.

    ---
    tags:
      - Chat
    responses:
      200:
        description: Unread count
    """
    count = ChatMessage.query.filter_by(receiver_id=request.user.id, is_read=False).count()
    return jsonify({"unread": count})
