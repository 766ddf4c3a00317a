"""
Domain exceptions raised by the template, rendering and issuance layers.
The API layer maps them onto HTTP responses in one place.
"""

from typing import Optional


class CredentiaError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    error = "Internal Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class ValidationError(CredentiaError):
    """Malformed template or missing bound data. Names the offending field."""

    status_code = 422
    error = "Validation Error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field is not None:
            data["field"] = self.field
        return data


class NotFoundError(CredentiaError):
    """Entity is absent or not owned by the caller's organization."""

    status_code = 404
    error = "Not Found"

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class RenderError(CredentiaError):
    """Background could not be decoded or a font could not be resolved."""

    status_code = 500
    error = "Render Error"


class SurfaceNotReadyError(RenderError):
    """Native or surface dimensions are zero; rendering must be deferred."""


class PersistenceError(CredentiaError):
    """Storage layer failure while saving a template or credential."""

    status_code = 500
    error = "Persistence Error"


class AuthError(CredentiaError):
    """Caller organization could not be resolved from the supplied token."""

    status_code = 401
    error = "Unauthorized"


class BuilderStateError(CredentiaError):
    """Template builder operation is not allowed in the current state."""

    status_code = 409
    error = "Conflict"
