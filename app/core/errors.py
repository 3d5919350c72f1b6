"""Error taxonomy shared by the services and the API boundary.

Every error carries a machine-readable ``code``, the HTTP status the API maps it
to, and a ``context`` dict (booking id, operation name, ...) that goes to the log.
"""


class StudioError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class ValidationError(StudioError):
    status_code = 400
    code = "validation_error"


class PermissionDenied(StudioError):
    status_code = 403
    code = "permission_denied"


class NotFoundError(StudioError):
    status_code = 404
    code = "not_found"


class ConflictError(StudioError):
    status_code = 409
    code = "conflict"


class SlotConflictError(ConflictError):
    code = "slot_conflict"


class LockTimeoutError(StudioError):
    status_code = 423
    code = "lock_timeout"


class DatabaseError(StudioError):
    """Unexpected persistence failure. The message shown to callers stays generic."""

    status_code = 500
    code = "database_error"
    public_message = "Internal error, please try again later"
