"""
Application error taxonomy.

Services raise these; ``main.py`` renders them as
``{"detail": ..., "reason": ...}`` with the class status code. ``reason`` is
the stable, machine-readable part of the contract.
"""
from typing import Any, Optional


class AppError(Exception):
    status_code: int = 500
    reason: str = "internal_error"
    detail: Any = "Internal server error"

    def __init__(self, detail: Any = None, reason: Optional[str] = None):
        if detail is not None:
            self.detail = detail
        if reason is not None:
            self.reason = reason
        super().__init__(self.detail)


class ValidationError(AppError):
    status_code = 400
    reason = "validation_error"
    detail = "Invalid input"


class NotFoundError(AppError):
    status_code = 404
    reason = "not_found"
    detail = "Not found"


class ConflictError(AppError):
    status_code = 409
    reason = "conflict"
    detail = "Conflict"


class UnauthorizedError(AppError):
    status_code = 401
    reason = "unauthorized"
    detail = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    reason = "forbidden"
    detail = "Forbidden"


class PaymentRequiredError(AppError):
    status_code = 402
    reason = "subscription_expired"
    detail = "Subscription has expired"


class StateError(AppError):
    status_code = 409
    reason = "invalid_state"
    detail = "Operation not allowed in the current state"


class UpstreamError(AppError):
    status_code = 502
    reason = "upstream_error"
    detail = "Payment provider error"


# Concrete failures used across services


class InvalidPhoneFormat(ValidationError):
    reason = "invalid_phone_format"
    detail = "Invalid phone number format"


class InvalidPlan(ValidationError):
    reason = "invalid_plan"
    detail = "Invalid plan"


class UnknownAccount(NotFoundError):
    reason = "unknown_account"
    detail = "User not found"


class OrderNotFound(NotFoundError):
    reason = "order_not_found"
    detail = "Order not found"


class InvalidCredentials(UnauthorizedError):
    reason = "invalid_credentials"
    detail = "Invalid credentials"


class MissingKey(UnauthorizedError):
    reason = "missing_api_key"
    detail = "API Key required"


class InvalidKey(UnauthorizedError):
    reason = "invalid_api_key"
    detail = "Invalid API Key"


class GatewayUnavailable(UpstreamError):
    status_code = 503
    reason = "gateway_unavailable"
    detail = "Payment provider unavailable"


class GatewayRejected(UpstreamError):
    reason = "gateway_rejected"
    detail = "STK push failed"
