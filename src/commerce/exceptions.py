"""
Storefront domain exceptions.

Each exception carries a client-facing message; the API layer maps the
classes to HTTP status codes.
"""


class StorefrontError(Exception):
    """Base class for all storefront domain errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundError(StorefrontError):
    """A record does not exist, or does not belong to the requesting owner."""

    def __init__(self, entity: str, identifier=None):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity.capitalize()} not found")


class ValidationFailure(StorefrontError):
    """Input that is well-formed JSON but breaks a domain rule."""


class PermissionDenied(StorefrontError):
    """The caller is known but may not act on the record."""


class AuthenticationRequired(StorefrontError):
    """No (valid) caller identity was supplied."""


class StoreFailure(StorefrontError):
    """The data store failed; the operation was aborted and rolled back."""


class StatisticsUnavailable(StoreFailure):
    """Raised when any query of the admin statistics report fails."""

    def __init__(self):
        super().__init__("Error fetching admin statistics")
