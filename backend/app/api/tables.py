from flask import Blueprint, jsonify, request

from app.services.game import presence
from app.services.game.challenges import get_table_badges
from app.services.game.tables import find_table_by_code, list_tables, normalize_table_id


tables = Blueprint('tables', __name__)


@tables.route('', methods=['GET'])
def table_ids():
    return jsonify({'table_ids': [t.id for t in list_tables()]})


@tables.route('/validate-code', methods=['POST'])
def validate_code():
    data = request.get_json(silent=True) or {}
    if not data.get('code'):
        return jsonify({'error': 'Table code is required'}), 400
    table = find_table_by_code(data['code'])
    return jsonify({'valid': True, 'table_id': table.id})


@tables.route('/<string:table_id>/badges', methods=['GET'])
def badges(table_id):
    awards = get_table_badges(table_id)
    return jsonify({'table_id': normalize_table_id(table_id), 'badges': [b.to_dict() for b in awards]})


@tables.route('/<string:table_id>/users', methods=['GET'])
def users(table_id):
    members = presence.table_users(table_id)
    return jsonify({
        'table_id': normalize_table_id(table_id),
        'users': [u.to_dict() for u in members],
        'user_count': len(members),
    })


@tables.route('/<string:table_id>/join', methods=['POST'])
def join(table_id):
    data = request.get_json(silent=True) or {}
    user = presence.join_table(table_id, data.get('first_name'), data.get('last_name'))
    return jsonify({'success': True, 'user': user.to_dict()})


@tables.route('/<string:table_id>/heartbeat', methods=['POST'])
def heartbeat(table_id):
    data = request.get_json(silent=True) or {}
    known = presence.heartbeat(table_id, data.get('first_name'), data.get('last_name'))
    return jsonify({'success': True, 'known': known})


@tables.route('/<string:table_id>/leave', methods=['POST'])
def leave(table_id):
    data = request.get_json(silent=True) or {}
    presence.leave_table(table_id, data.get('first_name'), data.get('last_name'))
    return jsonify({'success': True})
