from flask import Blueprint, jsonify, request
from flask_login import login_required

from app.permissions import admin_required, capability_required
from app.services.game import session as game_session
from app.socketio_events import notify_all


game = Blueprint('game', __name__)


def _game_changed(session):
    notify_all('game_update', {'status': session.status})
    return jsonify({'success': True, 'game': session.to_dict()})


@game.route('/status', methods=['GET'])
def status():
    return jsonify(game_session.get_game_session().to_dict())


@game.route('/start', methods=['POST'])
@login_required
@capability_required('manage_game_state')
def start():
    return _game_changed(game_session.start_game())


@game.route('/pause', methods=['POST'])
@login_required
@capability_required('manage_game_state')
def pause():
    return _game_changed(game_session.pause_game())


@game.route('/resume', methods=['POST'])
@login_required
@capability_required('manage_game_state')
def resume():
    return _game_changed(game_session.resume_game())


@game.route('/end', methods=['POST'])
@login_required
@capability_required('manage_game_state')
def end():
    return _game_changed(game_session.end_game())


@game.route('/reset', methods=['POST'])
@login_required
@admin_required
def reset():
    return _game_changed(game_session.reset_game())


@game.route('/countdown', methods=['GET'])
def countdown():
    return jsonify(game_session.get_countdown().to_dict())


@game.route('/countdown', methods=['POST'])
@login_required
@capability_required('manage_countdown')
def set_countdown():
    data = request.get_json(silent=True) or {}
    timer = game_session.set_countdown(data.get('minutes'), data.get('message'))
    notify_all('countdown_update', timer.to_dict())
    return jsonify({'success': True, 'countdown': timer.to_dict()})


@game.route('/countdown/stop', methods=['POST'])
@login_required
@capability_required('manage_countdown')
def stop_countdown():
    timer = game_session.stop_countdown()
    notify_all('countdown_update', timer.to_dict())
    return jsonify({'success': True, 'countdown': timer.to_dict()})
