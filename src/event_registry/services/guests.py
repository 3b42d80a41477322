"""Guest list and RSVP management."""

from dataclasses import dataclass

from event_registry.adapters.registry_client import RegistryClient
from event_registry.domain.models import Guest, RsvpStats, UserRecord
from event_registry.errors import BackendRejectedError, GuestValidationError


@dataclass
class GuestService:
    """Application service for a user's guests."""

    client: RegistryClient

    async def list_guests(self, user: UserRecord) -> list[Guest]:
        """Return guests created by the user."""
        return await self.client.list_guests(user.email)

    async def find_guest(
        self, user: UserRecord, name: str, number: str
    ) -> Guest | None:
        """Return the user's guest with this identity, if any."""
        for guest in await self.list_guests(user):
            if guest.name == name and guest.number == number:
                return guest
        return None

    async def add_guest(self, user: UserRecord, name: str, number: str) -> Guest:
        """Create a guest after checking required fields and duplicates."""
        name = (name or "").strip()
        number = (number or "").strip()
        if not name:
            raise GuestValidationError("Guest name is required")
        if not number:
            raise GuestValidationError("Phone number is required")
        for existing in await self.list_guests(user):
            if existing.name.lower() == name.lower():
                raise GuestValidationError("A guest with this name already exists.")
            if existing.number == number:
                raise GuestValidationError("A guest with this number already exists.")
        return await self.client.create_guest(
            Guest(name=name, number=number, user_email=user.email)
        )

    async def set_rsvp(self, name: str, number: str, going: bool) -> Guest:
        """Record whether a guest is attending."""
        return await self.client.update_guest(name, number, {"going": going})

    async def delete_guest(self, name: str, number: str) -> None:
        """Delete a guest together with the guest's claims."""
        try:
            await self.client.delete_guest_claims(name, number)
        except BackendRejectedError as exc:
            if not exc.is_not_found:
                raise
        await self.client.delete_guest(name, number)


def rsvp_stats(guests: list[Guest]) -> RsvpStats:
    """Count going and not-going guests."""
    going = sum(1 for guest in guests if guest.going)
    return RsvpStats(total=len(guests), going=going, not_going=len(guests) - going)
