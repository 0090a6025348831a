import logging

from flask import Blueprint, abort, jsonify, request
from flask_login import current_user, login_required

from emails import email_service
from models import Match, Message, db, utcnow
from validators import id_field, text_field

logger = logging.getLogger(__name__)

message_bp = Blueprint('messages', __name__)

MAX_MESSAGE_LENGTH = 5000


def _conversation_match(match_id):
    """The accepted match the current user takes part in"""

    match = db.session.get(Match, match_id)
    role = getattr(current_user, 'role', None)
    if match is None or not (
        (role == 'client' and match.client_id == current_user.id)
        or (role == 'designer' and match.designer_id == current_user.id)
    ):
        abort(404, description='Conversation not found')
    if match.status != 'accepted':
        abort(403, description='Messaging opens once the designer accepts the project')
    return match


@message_bp.route('/api/messages/send', methods=['POST'])
@login_required
def send_message():
    data = request.get_json(silent=True) or {}
    match_id = id_field(data, 'matchId')
    content = text_field(data, 'content')
    if not match_id or not content:
        abort(400, description='Match ID and content are required')
    if len(content) > MAX_MESSAGE_LENGTH:
        abort(400, description='Message is too long')

    match = _conversation_match(match_id)
    message = Message(
        match_id=match.id,
        sender_type=current_user.role,
        sender_id=current_user.id,
        content=content,
    )
    db.session.add(message)
    db.session.commit()

    if current_user.role == 'client':
        recipient_email = match.designer.email
        recipient_name = match.designer.first_name or 'there'
        sender_name = match.client.name or 'Your client'
        conversation_url = email_service.url(f'/designer/messages/{match.id}')
    else:
        recipient_email = match.client.email
        recipient_name = match.client.name or 'there'
        sender_name = match.designer.display_name
        conversation_url = email_service.url(f'/client/messages/{match.id}')
    email_service.send_message_notification(recipient_email, recipient_name, sender_name, content, conversation_url)

    return jsonify({'success': True, 'message': message.to_dict()})


@message_bp.route('/api/conversations/<int:match_id>/messages', methods=['GET'])
@login_required
def conversation(match_id):
    match = _conversation_match(match_id)
    messages = Message.query.filter_by(match_id=match.id).order_by(Message.created_at, Message.id).all()

    unread = [m for m in messages if m.sender_type != current_user.role and m.read_at is None]
    if unread:
        now = utcnow()
        for m in unread:
            m.read_at = now
        db.session.commit()

    return jsonify({'matchId': match.id, 'messages': [m.to_dict() for m in messages]})
