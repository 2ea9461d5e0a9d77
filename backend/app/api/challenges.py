from flask import Blueprint, jsonify, request
from flask_login import login_required

from app.permissions import capability_required
from app.services.game import challenges as challenge_service
from app.socketio_events import notify_all


challenges = Blueprint('challenges', __name__)


@challenges.route('', methods=['POST'])
@login_required
@capability_required('manage_challenges')
def create_challenge():
    data = request.get_json(silent=True) or {}
    challenge = challenge_service.create_challenge(
        data.get('title'),
        data.get('description'),
        data.get('type'),
        data.get('duration_minutes'),
        data.get('badge_name'),
        data.get('badge_emoji'),
    )
    notify_all('challenge_update', {'challenge_id': challenge.id, 'active': True})
    return jsonify({'success': True, 'challenge': challenge.to_dict()}), 201


@challenges.route('/active', methods=['GET'])
def active_challenges():
    items = challenge_service.list_active_challenges()
    return jsonify({'challenges': [c.to_dict() for c in items]})


@challenges.route('/<string:challenge_id>', methods=['GET'])
def get_challenge(challenge_id):
    challenge = challenge_service.get_challenge(challenge_id)
    return jsonify({'challenge': challenge.to_dict()})


@challenges.route('/<string:challenge_id>/end', methods=['POST'])
@login_required
@capability_required('manage_challenges')
def end_challenge(challenge_id):
    winner, results = challenge_service.end_challenge_now(challenge_id)
    notify_all('challenge_update', {'challenge_id': challenge_id, 'active': False, 'winner': winner})
    return jsonify({'success': True, 'winner': winner, 'results': results})
