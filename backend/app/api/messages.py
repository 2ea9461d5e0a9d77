from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from app import limiter
from app.limits import message_limit
from app.permissions import capability_required
from app.services.game import messages as message_service
from app.services.game.reactions import toggle_reaction
from app.services.game.scoring import compute_leaderboard
from app.services.game.tables import normalize_table_id
from app.socketio_events import notify_all, notify_table


messages = Blueprint('messages', __name__)


@messages.route('/messages', methods=['POST'])
@limiter.shared_limit(message_limit, scope='messages')
def send_message():
    data = request.get_json(silent=True) or {}
    message = message_service.send_message(
        data.get('content'),
        data.get('from_table'),
        data.get('to_table'),
        data.get('sender_name'),
        data.get('is_anonymous', False),
    )
    notify_table(message.to_table_id, 'messages_update', {'table_id': message.to_table_id})
    return jsonify({'success': True, 'message_id': message.id}), 201


@messages.route('/messages/<string:table_id>', methods=['GET'])
def get_table_messages(table_id):
    viewer = normalize_table_id(table_id)
    items = message_service.messages_for_table(viewer)
    return jsonify({'messages': [m.to_dict(viewer_table_id=viewer) for m in items]})


@messages.route('/messages/<string:message_id>/reactions', methods=['POST'])
@limiter.shared_limit(message_limit, scope='messages')
def react(message_id):
    data = request.get_json(silent=True) or {}
    result = toggle_reaction(message_id, data.get('table_id'), data.get('reaction'))
    notify_table(result['to_table'], 'reactions_update', {
        'message_id': message_id,
        'reactions': result['reactions'],
    })
    return jsonify({
        'success': True,
        'reactions': result['reactions'],
        'user_reaction': result['user_reaction'],
    })


@messages.route('/messages/broadcast', methods=['POST'])
@login_required
@capability_required('send_broadcast')
def broadcast():
    data = request.get_json(silent=True) or {}
    sent = message_service.broadcast_message(data.get('content'))
    notify_all('messages_update', {'broadcast': True})
    return jsonify({
        'success': True,
        'message': f'Message sent to {len(sent)} tables',
        'table_count': len(sent),
    })


@messages.route('/leaderboard/tv', methods=['GET'])
def tv_leaderboard():
    limit = int(current_app.config.get('TV_LEADERBOARD_LIMIT', 5))
    return jsonify({'leaderboard': compute_leaderboard(limit)})
