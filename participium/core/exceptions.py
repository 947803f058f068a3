"""
Domain exceptions for Participium.

Services raise these instead of HTTPException so they stay framework-free;
main.py renders them as {"success": false, "message": ...} with the
matching HTTP status.
"""

from typing import Any, Dict


class ParticipiumError(Exception):
    """Base exception for all Participium business-rule failures"""

    status_code: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message}


class BadRequestError(ParticipiumError):
    status_code = 400


class UnauthorizedError(ParticipiumError):
    status_code = 401


class ForbiddenError(ParticipiumError):
    status_code = 403

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


class NotFoundError(ParticipiumError):
    status_code = 404


class ConflictError(ParticipiumError):
    status_code = 409


class StorageError(ParticipiumError):
    """Photo upload/delete against the storage bucket failed"""

    status_code = 500
