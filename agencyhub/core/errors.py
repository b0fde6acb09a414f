"""Domain error taxonomy.

Services raise these; the handlers registered in ``agencyhub.main`` turn
them into HTTP responses.  Authentication and membership guards in
``agencyhub.api.dependencies`` raise ``HTTPException`` directly instead.

  NotFoundError          404  {"message": ...}
  ConflictError          409  {"message": ...}
  ValidationError        422  {"message": ...}
  EntitlementError       403  {"error": ..., "upgrade": true}
  UpstreamError          502  {"message": <generic>}
  StoreUnavailableError  503  {"message": ...}
  WebhookError           400  {"error": ...}
"""

from __future__ import annotations


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {"message": self.message}


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class ValidationError(AppError):
    status_code = 422


class EntitlementError(AppError):
    """Plan limit or feature gate.  The client should offer an upgrade."""

    status_code = 403

    def __init__(self, message: str, *, kind: str = "feature") -> None:
        super().__init__(message)
        self.kind = kind

    def to_body(self) -> dict:
        return {"error": self.message, "upgrade": True}


class UpstreamError(AppError):
    """A payment processor or AI provider call failed."""

    status_code = 502

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider

    def to_body(self) -> dict:
        return {"message": f"The {self.provider} service is unavailable, try again later"}


class StoreUnavailableError(AppError):
    status_code = 503


class WebhookError(AppError):
    status_code = 400

    def to_body(self) -> dict:
        return {"error": self.message}
