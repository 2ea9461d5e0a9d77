"""Error types raised by the game services.

Routes let these propagate; the handler registered in ``create_app``
renders them as ``{"error": message}`` with the matching status code.
"""


class GameError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GameError):
    """Malformed or out-of-range input."""
    status_code = 400


class NotFoundError(GameError):
    status_code = 404


class StateConflictError(GameError):
    """The entity is in a state that does not allow the operation."""
    status_code = 409


class GameNotActiveError(StateConflictError):
    status_code = 403


class PermissionDeniedError(GameError):
    status_code = 403


class InternalError(GameError):
    """Storage or transaction failure."""
    status_code = 500
