"""Error types surfaced by the registry client and services."""

GENERIC_BACKEND_MESSAGE = "The server could not complete the request. Please try again."
CONNECTIVITY_MESSAGE = "Could not reach the server. Check your connection and retry."


class RegistryError(Exception):
    """Base class for user-reportable failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailure(RegistryError):
    """A locally detected precondition violation; never sent to the backend."""


class ClaimValidationError(ValidationFailure):
    """A claim quantity outside the allowed bounds."""

    def __init__(
        self,
        message: str,
        *,
        item_name: str | None = None,
        maximum: int | None = None,
    ) -> None:
        super().__init__(message)
        self.item_name = item_name
        self.maximum = maximum


class GuestValidationError(ValidationFailure):
    """Missing or duplicate guest details."""


class ProfileValidationError(ValidationFailure):
    """Invalid registration or profile fields."""


class AuthenticationError(RegistryError):
    """Unknown user or wrong password."""


class ConnectivityError(RegistryError):
    """The backend could not be reached or did not answer."""

    def __init__(self, message: str = CONNECTIVITY_MESSAGE) -> None:
        super().__init__(message)


class BackendRejectedError(RegistryError):
    """The backend answered with ``success: false`` or a non-2xx status."""

    def __init__(self, message: str | None, status_code: int | None = None) -> None:
        super().__init__(message or GENERIC_BACKEND_MESSAGE)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        """Return True when the backend reported a missing record."""
        return self.status_code == 404 or "not found" in self.message.lower()
