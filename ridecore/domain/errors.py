"""
Typed failures raised by the lifecycle controller and plan service.

Each error carries the HTTP status the API layer answers with; the
FastAPI app registers a single handler for ``DispatchError``.
"""


class DispatchError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidInput(DispatchError):
    """Missing or malformed coordinates / required fields."""

    status_code = 400


class Unauthorized(DispatchError):
    """The caller identity could not be resolved."""

    status_code = 401


class Forbidden(DispatchError):
    """Authenticated, but not entitled to act on the resource."""

    status_code = 403


class NotFound(DispatchError):
    status_code = 404


class InvalidState(DispatchError):
    """Operation not valid for the order's current status."""

    status_code = 409


class UpstreamUnavailable(DispatchError):
    """Storage or driver directory unreachable; safe to retry."""

    status_code = 503
