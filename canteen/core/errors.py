"""
Domain error taxonomy shared by the services and the HTTP adapter.

Services raise these; routers decide the status code, since the same kind maps
to different codes depending on the endpoint (e.g. NotFound is 404 for a QR
lookup but 409 for a hold confirmation).
"""
from typing import Optional


class DomainError(Exception):
    """Base class for every error that is reported verbatim to the caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class NotFoundError(DomainError):
    pass


class ValidationError(DomainError):
    pass


class BadRequestError(DomainError):
    pass


class ForbiddenError(DomainError):
    pass


class UnauthenticatedError(DomainError):
    pass


class NotAvailableError(DomainError):
    """A requested menu item cannot be reserved (disabled or out of stock)."""

    def __init__(self, item_id: int, name: Optional[str], reason: str):
        self.item_id = item_id
        self.name = name
        self.reason = reason
        super().__init__(f"Item {name} (id {item_id}) cannot be ordered: {reason}")
