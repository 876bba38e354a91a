class GameError(Exception):
    """Base class for rejected scoring operations.

    Carries a caller-facing reason string and the HTTP status the API layer
    responds with. Raised before any write, or inside a transaction that is
    rolled back, so stored state is never partially changed.
    """

    status_code = 400

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ValidationError(GameError):
    status_code = 400


class StateConflictError(GameError):
    status_code = 409


class NotFoundError(GameError):
    status_code = 404
