import re
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from app.schemas.base import (
    create_success_response,
    create_error_response,
)
from app.core.exceptions import (
    TripSeatError,
    ValidationError,
    SeatConflictError,
    CapacityError,
    InvalidAmountError,
    NotFoundError,
    StorageError,
)
from app.core.logging_config import get_logger

logger = get_logger(__name__)


class ResponseWrapper:
    """Utility class for wrapping responses in standard format"""

    @staticmethod
    def success(data: Any = None, message: str = "Success") -> Dict[str, Any]:
        return jsonable_encoder(create_success_response(data, message))

    @staticmethod
    def error(
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Wrap error response and make it JSON-safe"""
        raw = create_error_response(message, error_code, details)
        return jsonable_encoder(raw)

    @staticmethod
    def created(data: Any = None, message: str = "Resource created successfully") -> Dict[str, Any]:
        return ResponseWrapper.success(data, message)

    @staticmethod
    def deleted(message: str = "Resource deleted successfully", data: Any = None) -> Dict[str, Any]:
        return ResponseWrapper.success(data, message)


# Domain error -> HTTP status
DOMAIN_ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    SeatConflictError: status.HTTP_409_CONFLICT,
    CapacityError: status.HTTP_400_BAD_REQUEST,
    InvalidAmountError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def handle_domain_error(error: TripSeatError) -> HTTPException:
    """Convert a seat/gift card core error into a structured HTTP exception"""
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in DOMAIN_ERROR_STATUS.items():
        if isinstance(error, error_type):
            status_code = code
            break

    detail = ResponseWrapper.error(
        message=error.message,
        error_code=error.error_code,
        details=error.details or None,
    )
    return HTTPException(status_code=status_code, detail=detail)


def handle_db_error(error: Exception) -> HTTPException:
    """Convert database errors to HTTP exceptions with detailed info"""
    error_msg = str(error).strip().replace("\n", " ")

    if "duplicate key" in error_msg.lower() or "unique constraint" in error_msg.lower():
        match = re.search(r"Key \((.*?)\)=\((.*?)\)", error_msg)
        field_info = {}
        if match:
            columns = match.group(1).split(", ")
            values = match.group(2).split(", ")
            field_info = {col: val for col, val in zip(columns, values)}

        detail = ResponseWrapper.error(
            message="Resource already exists with the same values",
            error_code="DUPLICATE_RESOURCE",
            details={"db_error": error_msg, "conflicting_fields": field_info},
        )
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    detail = ResponseWrapper.error(
        message="Database operation failed",
        error_code="DATABASE_ERROR",
        details={"db_error": error_msg},
    )
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


def handle_http_error(error: Exception) -> HTTPException:
    """Convert HTTP and generic exceptions into structured ResponseWrapper format"""
    if isinstance(error, HTTPException):
        detail = getattr(error, "detail", str(error))
        if isinstance(detail, dict) and detail.get("success") is not None:
            return error

        detail = ResponseWrapper.error(
            message=str(detail),
            error_code="HTTP_ERROR",
            details={"original_error": detail},
        )
        return HTTPException(status_code=error.status_code, detail=detail)

    logger.exception(f"Unexpected HTTP error: {error}")
    detail = ResponseWrapper.error(
        message="Unexpected server error",
        error_code="INTERNAL_SERVER_ERROR",
        details={"original_error": str(error)},
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
