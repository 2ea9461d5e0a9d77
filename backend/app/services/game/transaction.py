from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from app import db
from app.errors import GameError, InternalError, StateConflictError


@contextmanager
def atomic():
    """Commit the session on success, roll back and raise a typed error otherwise."""
    try:
        yield db.session
        db.session.commit()
    except GameError:
        db.session.rollback()
        raise
    except (StaleDataError, IntegrityError) as exc:
        db.session.rollback()
        current_app.logger.warning(f"[tx-conflict] {exc.__class__.__name__}: {exc}")
        raise StateConflictError('Concurrent update detected, retry the request') from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[tx-failed] {exc.__class__.__name__}: {exc}")
        raise InternalError('Storage failure') from exc
