import re
from typing import List, Optional

from flask import current_app

from app import db
from app.errors import NotFoundError, ValidationError
from app.models import Admin, Staff, Table
from .transaction import atomic

_CODE_RE = re.compile(r'^[A-Z0-9]+$')
MAX_CODE_LENGTH = 10


def normalize_table_id(value) -> str:
    """Table ids are case-insensitive; store and compare them upper-cased."""
    if value is None:
        return ''
    return str(value).strip().upper()


def validate_table_code(code) -> str:
    """Validate a table id or secret code and return its canonical form."""
    if not code or not isinstance(code, str):
        raise ValidationError('Table code is required')
    normalized = normalize_table_id(code)
    if not normalized:
        raise ValidationError('Table code cannot be empty')
    if len(normalized) > MAX_CODE_LENGTH:
        raise ValidationError(f'Table code too long (max {MAX_CODE_LENGTH} characters)')
    if not _CODE_RE.match(normalized):
        raise ValidationError('Table code may only contain letters and digits')
    return normalized


def ensure_code_available(code: str, staff_id: Optional[int] = None) -> None:
    """Join codes, staff codes and the admin code share one namespace."""
    if Table.query.filter_by(code=code).first():
        raise ValidationError('Code conflicts with an existing game table')
    staff = Staff.query.filter_by(table_code=code).first()
    if staff and staff.id != staff_id:
        raise ValidationError('Code already used by a staff member')
    if Admin.query.filter_by(secret_table_code=code).first():
        raise ValidationError('Code conflicts with the admin code')


def get_table(table_id) -> Table:
    table = Table.query.filter_by(id=normalize_table_id(table_id)).first()
    if not table:
        raise NotFoundError('Table not found')
    return table


def find_table_by_code(code) -> Table:
    table = Table.query.filter_by(code=normalize_table_id(code)).first() if code else None
    if not table:
        raise NotFoundError('Invalid table code')
    return table


def list_tables() -> List[Table]:
    return Table.query.order_by(Table.id).all()


def create_table(table_id, code) -> Table:
    if not table_id or not code:
        raise ValidationError('Table id and code are required')
    table_id = validate_table_code(str(table_id))
    code = validate_table_code(str(code))
    if Table.query.filter_by(id=table_id).first():
        raise ValidationError('Table already exists')
    ensure_code_available(code)
    with atomic():
        table = Table(id=table_id, code=code)
        db.session.add(table)
    current_app.logger.info(f"[table] created {table_id}")
    return table


def delete_table(table_id) -> None:
    table = get_table(table_id)
    with atomic():
        db.session.delete(table)
    current_app.logger.info(f"[table] deleted {table.id}")
