"""
Error kinds raised by the availability and booking core.

Each kind means something different to a caller, so they are never collapsed:
a Conflict asks the client to pick another time, NotFound and InvalidAssignment
are input errors that must not be retried, and StorageFailure may be retried
after re-querying.
"""


class BookingError(Exception):
    """Base class for all core errors"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BookingError):
    """Business, service, staff or booking missing, or not under this business"""

    status_code = 404


class InvalidAssignmentError(BookingError):
    """Staff member cannot perform the requested service"""

    status_code = 400


class ConflictError(BookingError):
    """Requested interval collides with a booking, a blackout or closed hours"""

    status_code = 409


class InvalidInputError(BookingError):
    status_code = 400


class StorageFailure(BookingError):
    """Persistence layer failed; outcome of a write is unknown"""

    status_code = 503
