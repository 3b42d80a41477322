"""Domain models for users and guests."""

from dataclasses import dataclass

from event_registry.domain.items import Claimant


@dataclass(frozen=True)
class UserRecord:
    """Represents a registered user as returned by the backend."""

    email: str
    name: str
    number: str
    role: str = "guest"
    password: str | None = None

    @property
    def claimant(self) -> Claimant:
        """Claimant identity used when the user claims for themselves."""
        return Claimant(name=self.name, number=self.email)

    def has_role(self, role: str) -> bool:
        """Return True if the user holds the given role (case-insensitive)."""
        return self.role.lower() == role.lower()


@dataclass(frozen=True)
class Guest:
    """A claimant identity created by a registered user."""

    name: str
    number: str
    user_email: str | None
    going: bool = False

    @property
    def claimant(self) -> Claimant:
        return Claimant(name=self.name, number=self.number)


@dataclass(frozen=True)
class RsvpStats:
    """RSVP totals for a user's guest list."""

    total: int
    going: int
    not_going: int
