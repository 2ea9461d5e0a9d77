"""Admin and staff accounts: setup, credentials and capability grants."""

from typing import List, Optional

from flask import current_app

from app import db
from app.errors import NotFoundError, StateConflictError, ValidationError
from app.models import Admin, Staff
from app.permissions import serialize_capabilities, validate_capabilities
from .tables import ensure_code_available, normalize_table_id, validate_table_code
from .transaction import atomic

DEFAULT_ADMIN_CODE = '001'


def sanitize_input(value, max_length: int = 100) -> str:
    return str(value or '').strip().replace('<', '').replace('>', '')[:max_length]


def validate_password(password) -> str:
    if not password or not isinstance(password, str):
        raise ValidationError('Password is required')
    if len(password) < 6:
        raise ValidationError('Password must be at least 6 characters')
    if len(password) > 100:
        raise ValidationError('Password too long (max 100 characters)')
    return password


def _names_match(account, first_name, last_name) -> bool:
    return (
        account.first_name.lower() == str(first_name or '').strip().lower()
        and account.last_name.lower() == str(last_name or '').strip().lower()
    )


def admin_exists() -> bool:
    return Admin.query.count() > 0


def setup_admin(first_name, last_name, password) -> Admin:
    if not all([first_name, last_name, password]):
        raise ValidationError('All fields are required')
    if admin_exists():
        raise StateConflictError('Admin already exists')
    validate_password(password)
    with atomic():
        admin = Admin(
            first_name=sanitize_input(first_name),
            last_name=sanitize_input(last_name),
            secret_table_code=DEFAULT_ADMIN_CODE,
        )
        admin.set_password(password)
        db.session.add(admin)
    current_app.logger.info(f"[admin] account created for {admin.first_name} {admin.last_name}")
    return admin


def authenticate_admin(first_name, last_name, code, password) -> Optional[Admin]:
    """Return the admin when every credential matches, else None (no hint which one failed)."""
    admin = Admin.query.filter_by(secret_table_code=normalize_table_id(code)).first()
    if not admin:
        return None
    password_ok = admin.check_password(password or '')
    if not (_names_match(admin, first_name, last_name) and password_ok):
        return None
    return admin


def get_admin(admin_id) -> Admin:
    admin = Admin.query.filter_by(id=admin_id).first()
    if not admin:
        raise NotFoundError('Admin not found')
    return admin


def update_admin_code(admin_id, new_code) -> Admin:
    """Rotate the admin's secret login code; it shares the namespace with table and staff codes."""
    admin = get_admin(admin_id)
    code = validate_table_code(new_code)
    if code == admin.secret_table_code:
        return admin
    ensure_code_available(code)
    with atomic():
        admin.secret_table_code = code
    current_app.logger.info(f"[admin] secret code rotated for id={admin.id}")
    return admin


def code_type(first_name, last_name, code) -> str:
    """Which login form a code belongs to: 'admin', 'staff' or 'game'.

    Only reveals admin or staff when the names match too; anything else,
    including missing fields, reads as a game table code.
    """
    if not all([first_name, last_name, code]):
        return 'game'
    normalized = normalize_table_id(code)
    admin = Admin.query.filter_by(secret_table_code=normalized).first()
    if admin and _names_match(admin, first_name, last_name):
        return 'admin'
    staff = Staff.query.filter_by(table_code=normalized).first()
    if staff and staff.is_active and _names_match(staff, first_name, last_name):
        return 'staff'
    return 'game'


def list_staff() -> List[Staff]:
    return Staff.query.order_by(Staff.created_at.desc()).all()


def get_staff(staff_id) -> Staff:
    staff = Staff.query.filter_by(id=staff_id).first()
    if not staff:
        raise NotFoundError('Staff member not found')
    return staff


def create_staff(first_name, last_name, password, table_code, permissions=None) -> Staff:
    if not all([first_name, last_name, password, table_code]):
        raise ValidationError('All fields are required')
    validate_password(password)
    code = validate_table_code(table_code)
    ensure_code_available(code)
    if permissions is not None:
        validate_capabilities(permissions)
    with atomic():
        staff = Staff(
            first_name=sanitize_input(first_name),
            last_name=sanitize_input(last_name),
            table_code=code,
            permissions=serialize_capabilities(permissions),
        )
        staff.set_password(password)
        db.session.add(staff)
    current_app.logger.info(f"[staff] created {staff.first_name} {staff.last_name} ({code})")
    return staff


def update_staff(staff_id, first_name=None, last_name=None, table_code=None, is_active=None, password=None) -> Staff:
    staff = get_staff(staff_id)
    new_code = None
    if table_code and normalize_table_id(table_code) != staff.table_code:
        new_code = validate_table_code(table_code)
        ensure_code_available(new_code, staff_id=staff.id)
    if password:
        validate_password(password)
    with atomic():
        if first_name:
            staff.first_name = sanitize_input(first_name)
        if last_name:
            staff.last_name = sanitize_input(last_name)
        if isinstance(is_active, bool):
            staff.is_active = is_active
        if new_code:
            staff.table_code = new_code
        if password:
            staff.set_password(password)
    current_app.logger.info(f"[staff] updated id={staff.id}")
    return staff


def update_staff_permissions(staff_id, permissions) -> Staff:
    staff = get_staff(staff_id)
    validate_capabilities(permissions)
    with atomic():
        staff.permissions = serialize_capabilities(permissions)
    current_app.logger.info(f"[staff] permissions updated id={staff.id}")
    return staff


def delete_staff(staff_id) -> None:
    staff = get_staff(staff_id)
    with atomic():
        db.session.delete(staff)
    current_app.logger.info(f"[staff] deleted id={staff_id}")


def authenticate_staff(first_name, last_name, code, password) -> Optional[Staff]:
    staff = Staff.query.filter_by(table_code=normalize_table_id(code)).first()
    if not staff or not staff.is_active:
        return None
    password_ok = staff.check_password(password or '')
    if not (_names_match(staff, first_name, last_name) and password_ok):
        return None
    return staff
