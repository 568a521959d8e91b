"""Error taxonomy shared by the reporting core and the HTTP layer."""

from __future__ import annotations

from typing import Optional


class WorkbenchError(Exception):
    """Base class for every error raised by the workbench."""

    status_code = 500
    kind = "error"

    def to_dict(self) -> dict:
        return {"error": str(self), "kind": self.kind}


class ValidationError(WorkbenchError):
    """Malformed user input. Handled by the widget that detected it."""

    status_code = 400
    kind = "validation"


class InvalidColumnType(ValidationError):
    kind = "invalid_column_type"


class TypeMismatch(ValidationError):
    kind = "type_mismatch"


class SlicerNotConfigured(ValidationError):
    kind = "slicer_not_configured"


class MappingError(ValidationError):
    kind = "mapping"


class NotFound(WorkbenchError):
    status_code = 404
    kind = "not_found"


class RequestError(WorkbenchError):
    """A call to the remote workbench API failed."""

    status_code = 502
    kind = "request"

    def __init__(self, message: str, status: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.detail = detail

    def to_dict(self) -> dict:
        out = super().to_dict()
        if self.status is not None:
            out["status"] = self.status
        if self.detail:
            out["detail"] = self.detail
        return out


__all__ = [
    "WorkbenchError",
    "ValidationError",
    "InvalidColumnType",
    "TypeMismatch",
    "SlicerNotConfigured",
    "MappingError",
    "NotFound",
    "RequestError",
]
