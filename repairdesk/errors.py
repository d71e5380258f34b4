"""Exception taxonomy shared by the storage layer, services and API."""

from __future__ import annotations


class RepairDeskError(Exception):
    """Base class for application errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(RepairDeskError):
    """A required field is missing or malformed, or an image is rejected."""

    status_code = 400


class NotFoundError(RepairDeskError):
    """The update/delete target does not exist in the backend asked."""

    status_code = 404


class BackendUnavailableError(RepairDeskError):
    """A configured backend could not be reached (network, auth, disk)."""

    status_code = 503

    def __init__(self, backend: str, message: str = ""):
        super().__init__(f"{backend}: {message}" if message else backend)
        self.backend = backend


def from_pydantic(exc) -> ValidationError:
    """Flatten a pydantic ValidationError into one 400-style message."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return ValidationError("; ".join(parts) or str(exc))
