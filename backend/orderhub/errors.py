"""Error taxonomy shared by the service layer and the HTTP adapters."""

from __future__ import annotations

from typing import Any, Optional


class OrderHubError(Exception):
    """Base class for every error the order engine raises on purpose."""

    status_code = 500

    def __init__(self, message: str, error_code: Optional[str] = None, details: Any = None) -> None:
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(OrderHubError):
    """Malformed or out-of-range input. ``details`` lists the offending fields."""

    status_code = 400

    def __init__(self, message: str, fields: Optional[list[dict[str, Any]]] = None, **kwargs: Any) -> None:
        super().__init__(message, details=fields or None, **kwargs)


class InvalidDateRange(ValidationError):
    def __init__(self, date_from: Any, date_to: Any) -> None:
        super().__init__(
            "Invalid date range",
            fields=[
                {
                    "field": "dateFrom",
                    "message": f"dateFrom ({date_from}) must not be after dateTo ({date_to})",
                    "code": "invalid_date_range",
                }
            ],
        )
        self.date_from = date_from
        self.date_to = date_to


class NotFoundError(OrderHubError):
    status_code = 404

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order with ID {order_id} not found", error_code="OrderNotFound")
        self.order_id = order_id


class StoreError(OrderHubError):
    """Any failure coming out of the persistence layer."""

    def __init__(self, operation: str, message: str = "Internal server error") -> None:
        super().__init__(message, error_code="InternalError")
        self.operation = operation
