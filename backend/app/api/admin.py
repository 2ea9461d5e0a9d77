from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from app import limiter
from app.limits import admin_limit
from app.permissions import admin_required, capability_required
from app.services.game import accounts, presence
from app.services.game import tables as table_service
from app.services.game.messages import all_messages
from app.services.game.scoring import compute_leaderboard


admin = Blueprint('admin', __name__)
limiter.limit(admin_limit)(admin)


@admin.route('/tables', methods=['GET'])
@login_required
@capability_required('view_users')
def active_tables():
    return jsonify({'tables': presence.tables_overview()})


@admin.route('/tables', methods=['POST'])
@login_required
@capability_required('manage_tables')
def create_table():
    data = request.get_json(silent=True) or {}
    table = table_service.create_table(data.get('table_id'), data.get('code'))
    return jsonify({'success': True, 'table': table.to_dict()}), 201


@admin.route('/tables/<string:table_id>', methods=['DELETE'])
@login_required
@capability_required('manage_tables')
def delete_table(table_id):
    table_service.delete_table(table_id)
    return jsonify({'success': True})


@admin.route('/messages', methods=['GET'])
@login_required
@capability_required('view_messages')
def list_all_messages():
    return jsonify({'messages': [m.to_dict(include_sender=True) for m in all_messages()]})


@admin.route('/leaderboard', methods=['GET'])
@login_required
@capability_required('view_leaderboard')
def leaderboard():
    limit = request.args.get('limit', type=int)
    return jsonify({'leaderboard': compute_leaderboard(limit)})


@admin.route('/profile', methods=['GET'])
@login_required
@admin_required
def profile():
    return jsonify({'profile': accounts.get_admin(current_user.id).to_dict()})


@admin.route('/secret-code', methods=['PUT'])
@login_required
@admin_required
def update_secret_code():
    data = request.get_json(silent=True) or {}
    if not data.get('new_code'):
        return jsonify({'error': 'New code is required'}), 400
    updated = accounts.update_admin_code(current_user.id, data['new_code'])
    return jsonify({'success': True, 'secret_table_code': updated.secret_table_code})


@admin.route('/staff', methods=['GET'])
@login_required
@admin_required
def list_staff():
    return jsonify({'staff': [s.to_dict() for s in accounts.list_staff()]})


@admin.route('/staff', methods=['POST'])
@login_required
@admin_required
def create_staff():
    data = request.get_json(silent=True) or {}
    staff = accounts.create_staff(
        data.get('first_name'),
        data.get('last_name'),
        data.get('password'),
        data.get('table_code'),
        data.get('permissions'),
    )
    return jsonify({'success': True, 'staff': staff.to_dict()}), 201


@admin.route('/staff/<int:staff_id>', methods=['PUT'])
@login_required
@admin_required
def update_staff(staff_id):
    data = request.get_json(silent=True) or {}
    staff = accounts.update_staff(
        staff_id,
        first_name=data.get('first_name'),
        last_name=data.get('last_name'),
        table_code=data.get('table_code'),
        is_active=data.get('is_active'),
        password=data.get('password'),
    )
    return jsonify({'success': True, 'staff': staff.to_dict()})


@admin.route('/staff/<int:staff_id>/permissions', methods=['PUT'])
@login_required
@admin_required
def update_permissions(staff_id):
    data = request.get_json(silent=True) or {}
    if data.get('permissions') is None:
        return jsonify({'error': 'Permissions object is required'}), 400
    staff = accounts.update_staff_permissions(staff_id, data['permissions'])
    return jsonify({'success': True, 'permissions': staff.capabilities})


@admin.route('/staff/<int:staff_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_staff(staff_id):
    accounts.delete_staff(staff_id)
    return jsonify({'success': True})
