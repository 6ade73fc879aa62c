# app/core/exceptions.py
"""
Typed failures raised by the booking/payment engine.

Every error carries a stable machine-readable `kind` and a human-readable
message. Routes never catch these; the handler in app.main renders them as
{"kind": ..., "detail": ...} with the matching HTTP status.
"""


class ServiceError(Exception):
    kind = "service_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.message}


class ValidationError(ServiceError):
    kind = "validation_error"
    status_code = 400


class AuthorizationError(ServiceError):
    kind = "authorization_error"
    status_code = 403


class NotFoundError(ServiceError):
    kind = "not_found"
    status_code = 404


class InvalidTransitionError(ServiceError):
    kind = "invalid_transition"
    status_code = 409


class InvalidStateError(ServiceError):
    kind = "invalid_state"
    status_code = 409


class ConflictError(ServiceError):
    kind = "conflict"
    status_code = 409


class ExternalFailure(ServiceError):
    kind = "external_failure"
    status_code = 502
