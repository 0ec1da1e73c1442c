"""Error taxonomy for notice workflows.

Each error carries the HTTP status the API layer answers with.
"""


class NoticeError(Exception):
    """Base class for workflow failures."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class Unauthenticated(NoticeError):
    status_code = 401


class Forbidden(NoticeError):
    status_code = 403


class InvalidInput(NoticeError):
    status_code = 400


class InvalidRange(InvalidInput):
    """End time is not after start time."""


class NotFound(NoticeError):
    status_code = 404


class Internal(NoticeError):
    status_code = 500
