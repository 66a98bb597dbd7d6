"""Error taxonomy shared by the gateway services and the HTTP layer."""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for failures the gateway reports to callers."""

    status_code = 500
    message = "Request failed."

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.message)
        self.detail = detail or self.message


class NotFound(GatewayError):
    """No matching document, blob or collection."""

    status_code = 404
    message = "Not found."


class StoreUnavailable(GatewayError):
    """The document store is unreachable or returned an error."""

    status_code = 503
    message = "Document store unavailable."


class PersistenceFailure(GatewayError):
    """A local blob or log file could not be read or written."""

    status_code = 500
    message = "Local persistence failed."


class ValidationFailure(GatewayError):
    """Malformed request input, e.g. a collection name unusable as a file name."""

    status_code = 400
    message = "Invalid request."
