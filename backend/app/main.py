from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from app import limiter
from app.limits import failed_login, login_limit
from app.services.game import accounts

main = Blueprint('main', __name__)

# Same answer for every credential mismatch so codes and names cannot be guessed one at a time
GENERIC_LOGIN_ERROR = 'Invalid credentials'

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the table messaging game server!'})

@main.route('/api/health')
def health():
    return jsonify({'status': 'ok'})

@main.route('/api/admin/exists')
def admin_exists():
    return jsonify({'exists': accounts.admin_exists()})

@main.route('/api/admin/setup', methods=['POST'])
def admin_setup():
    data = request.get_json(silent=True) or {}
    admin = accounts.setup_admin(data.get('first_name'), data.get('last_name'), data.get('password'))
    login_user(admin, remember=True)
    return jsonify({'success': True, 'admin': admin.to_dict()}), 201

@main.route('/api/admin/login', methods=['POST'])
@limiter.shared_limit(login_limit, scope='login', deduct_when=failed_login)
def admin_login():
    data = request.get_json(silent=True) or {}
    if not all([data.get('first_name'), data.get('last_name'), data.get('table_code'), data.get('password')]):
        return jsonify({'error': 'All fields are required'}), 400
    admin = accounts.authenticate_admin(
        data['first_name'], data['last_name'], data['table_code'], data['password']
    )
    if not admin:
        return jsonify({'success': False, 'error': GENERIC_LOGIN_ERROR}), 401
    login_user(admin, remember=True)
    return jsonify({'success': True, 'role': 'admin', 'permissions': 'all'})

@main.route('/api/staff/login', methods=['POST'])
@limiter.shared_limit(login_limit, scope='login', deduct_when=failed_login)
def staff_login():
    data = request.get_json(silent=True) or {}
    if not all([data.get('first_name'), data.get('last_name'), data.get('table_code'), data.get('password')]):
        return jsonify({'error': 'All fields are required'}), 400
    staff = accounts.authenticate_staff(
        data['first_name'], data['last_name'], data['table_code'], data['password']
    )
    if not staff or not login_user(staff, remember=True):
        return jsonify({'success': False, 'error': GENERIC_LOGIN_ERROR}), 401
    return jsonify({'success': True, 'role': 'staff', 'permissions': staff.capabilities})

@main.route('/api/check-code-type', methods=['POST'])
def check_code_type():
    data = request.get_json(silent=True) or {}
    kind = accounts.code_type(data.get('first_name'), data.get('last_name'), data.get('table_code'))
    return jsonify({'code_type': kind})

@main.route('/api/me')
@login_required
def me():
    return jsonify({
        'role': current_user.role,
        'first_name': current_user.first_name,
        'last_name': current_user.last_name,
        'permissions': current_user.capabilities if current_user.role == 'staff' else 'all',
    })

@main.route('/api/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})
