"""
API error hierarchy and JSON envelopes.

Every failure the API reports is an ``ApiError`` (an ``HTTPException``), so
routers can raise them directly and the handlers in ``dinein.main`` render
them as ``{"success": false, "message": ..., "errors": [...]}``.
"""

from typing import Any, List, Optional

from fastapi import HTTPException


class ApiError(HTTPException):
    """Base error carrying an HTTP status, a public message and detail list."""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Any]] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(status_code=self.status_code, detail=self.message)


# ---------- Taxonomy ----------

class ValidationFailed(ApiError):
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(ApiError):
    status_code = 401
    default_message = "Could not validate credentials"


class Forbidden(ApiError):
    status_code = 403
    default_message = "You are not authorized to perform this action"


class NotFound(ApiError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(ApiError):
    status_code = 409
    default_message = "Conflict"


class UpstreamFailure(ApiError):
    status_code = 502
    default_message = "Upstream service failed"


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal Server Error"


# ---------- Cart / menu ----------

class InvalidItem(ValidationFailed):
    default_message = "Invalid food item"


class InvalidVariant(ValidationFailed):
    default_message = "Invalid food variant"


class ItemUnavailable(ValidationFailed):
    default_message = "Food item is not available"


# ---------- Orders ----------

class TableOccupied(Conflict):
    default_message = "This table is not available for new orders, it is currently occupied"


class AlreadyInState(Conflict):
    status_code = 400
    default_message = "Order is already in the requested status"


class TerminalState(Conflict):
    status_code = 400
    default_message = "Cannot update status of completed or cancelled orders"


class InvalidTransition(Conflict):
    status_code = 400
    default_message = "Invalid order status transition"


class OrderLocked(Conflict):
    status_code = 400
    default_message = "Order can no longer be modified"


class NotClaimOwner(Forbidden):
    default_message = "Only the kitchen staff who updated the order can change its status"


# ---------- Entitlements ----------

class SubscriptionInactive(Forbidden):
    default_message = "No active subscription found. Please subscribe to continue using the service"


class QuotaExceeded(Forbidden):
    default_message = "Your plan limit has been reached"


# ---------- Payments ----------

class GatewayError(UpstreamFailure):
    default_message = "Payment gateway failed to create an order"


# ---------- Envelopes ----------

def api_response(status: int, data: Any, message: str = "Success") -> dict:
    """Success envelope shared by every endpoint."""
    return {"status": status, "data": data, "message": message, "success": True}


def error_body(message: str, errors: Optional[List[Any]] = None) -> dict:
    """Error envelope shared by every failure path."""
    return {"success": False, "message": message, "errors": errors or []}
