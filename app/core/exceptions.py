from typing import Any, Dict, Iterable, Optional


class TripSeatError(Exception):
    """Base class for errors raised by the seat and gift card core"""

    error_code = "TRIP_SEAT_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}


class ValidationError(TripSeatError):
    """Missing or malformed input, raised before any write"""

    error_code = "VALIDATION_ERROR"


class SeatConflictError(TripSeatError):
    """One or more seats are already occupied"""

    error_code = "SEAT_CONFLICT"

    def __init__(self, seats: Iterable[int], message: Optional[str] = None, trip_id: Optional[int] = None):
        self.seats = sorted(set(seats))
        seat_list = ", ".join(f"#{s}" for s in self.seats)
        details: Dict[str, Any] = {"seats": self.seats}
        if trip_id is not None:
            details["trip_id"] = trip_id
        super().__init__(message or f"Seat(s) {seat_list} already taken", details=details)


class CapacityError(TripSeatError):
    """Requested seats fall outside the vehicle layout bounds"""

    error_code = "CAPACITY_EXCEEDED"


class InvalidAmountError(TripSeatError):
    """Gift card redemption amount is zero, negative or larger than the balance"""

    error_code = "INVALID_AMOUNT"


class NotFoundError(TripSeatError):
    error_code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity.replace('_', ' ').capitalize()} {entity_id} not found",
            error_code=f"{entity.upper()}_NOT_FOUND",
            details={f"{entity}_id": entity_id},
        )


class StorageError(TripSeatError):
    """Persistence failure; the caller may retry"""

    error_code = "STORAGE_ERROR"
