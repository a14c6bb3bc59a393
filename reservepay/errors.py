"""Domain error taxonomy for the reservation lifecycle"""

from typing import Any, Dict, Optional


class ReservationError(Exception):
    """Base error carrying its HTTP rendering"""

    status_code: int = 500
    code: str = "internal_error"
    retryable: Optional[bool] = None

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }
        if self.retryable is not None:
            payload["retryable"] = self.retryable
        return {"ok": False, "error": payload}


class ReservationNotFound(ReservationError):
    status_code = 404
    code = "not_found"
    retryable = False

    def __init__(self, reservation_id: Any):
        super().__init__("Reservation not found", {"reservation_id": str(reservation_id)})


class NotFoundOrForbidden(ReservationError):
    """Same shape whether the reservation is missing or owned by someone else"""

    status_code = 404
    code = "not_found_or_forbidden"
    retryable = False

    def __init__(self):
        super().__init__("Reservation not found or not accessible")


class StatusConflict(ReservationError):
    status_code = 409
    code = "conflict"
    retryable = False

    def __init__(self, message: str, current_status: str):
        super().__init__(message, {"status": current_status})
        self.current_status = current_status


class InvalidRequest(ReservationError):
    status_code = 400
    code = "invalid_request"
    retryable = False


class TransientStoreError(ReservationError):
    status_code = 503
    code = "store_unavailable"
    retryable = True


class PaymentConfigurationError(ReservationError):
    status_code = 500
    code = "payment_not_configured"
    retryable = False


class PaymentProviderError(ReservationError):
    status_code = 502
    code = "payment_provider_error"
    retryable = True


class InvalidSignature(ReservationError):
    status_code = 400
    code = "invalid_signature"
    retryable = False


class DataIntegrityError(ReservationError):
    status_code = 500
    code = "data_integrity"
    retryable = False
