"""Error taxonomy for the proof-verification pipeline.

Every error is an ``HTTPException`` so it can be raised from the service
layer and rendered by the application handler as ``{"error": <message>}``.
"""

from __future__ import annotations

from fastapi import HTTPException


class VerificationError(HTTPException):
    status_code = 500
    default_message = "Verification failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(status_code=self.status_code, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return str(self.detail)


class Unauthorized(VerificationError):
    status_code = 401
    default_message = "Unauthorized"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message)
        self.headers = {"WWW-Authenticate": "Bearer"}


class BadRequest(VerificationError):
    status_code = 400
    default_message = "Bad request"


class StorageError(VerificationError):
    status_code = 502
    default_message = "Upload failed"


class GatewayError(VerificationError):
    status_code = 502
    default_message = "Vision gateway error"


class DbError(VerificationError):
    status_code = 500
    default_message = "DB insert failed"


class InternalError(VerificationError):
    status_code = 500
    default_message = "Internal server error"
