"""User registration, login and profile updates."""

import logging
from dataclasses import dataclass

from event_registry.adapters.registry_client import RegistryClient
from event_registry.domain.models import UserRecord
from event_registry.errors import (
    AuthenticationError,
    BackendRejectedError,
    ProfileValidationError,
)

MIN_PASSWORD_LENGTH = 6

_logger = logging.getLogger(__name__)


@dataclass
class UserService:
    """Application service for user account actions."""

    client: RegistryClient

    async def register(self, fields: dict[str, str]) -> UserRecord:
        """Validate and register a new user."""
        payload = validate_profile(fields)
        payload.setdefault("role", "guest")
        try:
            return await self.client.register_user(payload)
        except BackendRejectedError as exc:
            if exc.status_code == 409:
                raise AuthenticationError(
                    "This email is already registered. Please login instead."
                ) from exc
            raise

    async def authenticate(self, email: str, password: str) -> UserRecord:
        """Fetch a user by email and compare the password."""
        try:
            user = await self.client.get_user(email.strip())
        except BackendRejectedError as exc:
            if exc.is_not_found:
                raise AuthenticationError(
                    "User not found. Please check your credentials or register."
                ) from exc
            raise
        if user.password != password:
            _logger.info("Rejected login for %s", email)
            raise AuthenticationError("Invalid email or password.")
        return user

    async def update_profile(
        self, user: UserRecord, fields: dict[str, str]
    ) -> UserRecord:
        """Validate and save profile changes for the user."""
        payload = validate_profile(fields)
        return await self.client.update_user(user.email, payload)


def validate_profile(fields: dict[str, str]) -> dict[str, str]:
    """Return trimmed profile fields or raise on the first invalid one."""
    cleaned = {key: (value or "").strip() for key, value in fields.items()}
    if not cleaned.get("name"):
        raise ProfileValidationError("Name is required")
    email = cleaned.get("email", "")
    if not email:
        raise ProfileValidationError("Email is required")
    if "@" not in email:
        raise ProfileValidationError("Please enter a valid email address")
    if not cleaned.get("number"):
        raise ProfileValidationError("Phone number is required")
    password = cleaned.get("password", "")
    if not password:
        raise ProfileValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ProfileValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return cleaned
