"""
Error taxonomy for the funnel.

Gateway and uploader raise these; the funnel controller catches them and
records them on the affected editor; the API renders them as
``{"error": {"code", "message", "status"}}`` bodies.
"""

from __future__ import annotations


class FunnelError(Exception):
    """Base class for every handled funnel failure."""

    code = "FUNNEL_ERROR"
    status = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "status": self.status,
            }
        }


class NotFoundError(FunnelError):
    code = "NOT_FOUND"
    status = 404


class PersistenceError(FunnelError):
    """A record-store create/update/delete/link call failed."""

    code = "PERSISTENCE_FAILED"
    status = 502


class ValidationFailure(FunnelError):
    """Rejected before any record-store call was made."""

    code = "VALIDATION_FAILED"
    status = 422


class ReadOnlyError(ValidationFailure):
    code = "READ_ONLY"


class ConfirmationRequired(ValidationFailure):
    code = "CONFIRMATION_REQUIRED"
    status = 409


class UploadError(FunnelError):
    code = "UPLOAD_FAILED"
    status = 502


class EditorBusy(FunnelError):
    code = "EDITOR_BUSY"
    status = 409


class StageConfigurationError(FunnelError):
    """A persisted stage value is outside the eight known stages."""

    code = "INVALID_STAGE"
    status = 500


class UnexpectedError(FunnelError):
    """Any non-funnel exception raised while an editor was saving."""

    code = "UNEXPECTED_ERROR"
    status = 500
