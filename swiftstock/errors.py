"""Domain errors raised by services and rendered by the API layer."""

from __future__ import annotations


class ServiceError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message: str | None = None, *, errors: list | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(ServiceError, ValueError):
    status_code = 400
    default_message = 'Invalid input'


class AuthenticationError(ServiceError):
    status_code = 401
    default_message = 'Unauthorized'


class AuthorizationError(ServiceError, PermissionError):
    status_code = 403
    default_message = 'Insufficient permissions'


class NotFound(ServiceError, LookupError):
    status_code = 404
    default_message = 'Not found'


class Conflict(ServiceError):
    status_code = 409
    default_message = 'Already exists'


class InsufficientStock(ServiceError):
    status_code = 400

    def __init__(self, product_name: str, *, available: int, requested: int) -> None:
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f'Insufficient stock for {product_name}. Available: {available}, Requested: {requested}'
        )
