from typing import Optional


class LostAndFoundError(Exception):
    """Base class for failures surfaced by the lifecycle engine.

    Carries the HTTP status the API layer answers with. ``status`` is
    "fail" for caller mistakes (4xx) and "error" for collaborator
    failures (5xx).
    """

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)

        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.status = "fail" if str(self.status_code).startswith("4") else "error"


class ValidationError(LostAndFoundError):
    """A required field is missing or empty."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []


class SelfClaimError(LostAndFoundError):
    status_code = 400


class ItemNotFoundError(LostAndFoundError):
    status_code = 404


class UploadError(LostAndFoundError):
    """The object store rejected the image."""

    status_code = 502


class PersistenceError(LostAndFoundError):
    """The item repository could not complete a write."""

    status_code = 503
