"""Error taxonomy for the rideshare core."""


class RideshareError(Exception):
    """Base class; ``status_code`` is the HTTP status the API layer answers with."""
    status_code = 500


class ValidationError(RideshareError):
    """Raised for malformed input, before anything is written."""
    status_code = 400


class PermissionDeniedError(RideshareError):
    """Raised when a user acts on a request they do not own."""
    status_code = 403


class NotFoundError(RideshareError):
    """Raised when a referenced request, vote or user does not exist."""
    status_code = 404


class InvalidStateError(RideshareError):
    """Raised when a request is not in a state that allows the operation."""
    status_code = 409


class ConstraintViolation(RideshareError):
    """Raised when a uniqueness constraint (one vote per voter per request) is violated."""
    status_code = 500
