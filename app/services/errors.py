class MarketplaceError(Exception):
    """Base class for errors raised by the listing and offer workflows."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MarketplaceError):
    """Form input rejected before any store call is made."""


class NotFoundError(MarketplaceError):
    pass


class PermissionDeniedError(MarketplaceError):
    pass


class ConflictError(MarketplaceError):
    """The record is no longer in the state the operation expects."""


class StoreError(MarketplaceError):
    """The persistence layer failed. Never retried."""


class DuplicateSubmitError(ConflictError):
    """An idempotency key was reused for a different request."""
