"""Claim reconciliation against item availability."""

import itertools
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from event_registry.adapters.registry_client import RegistryClient
from event_registry.domain.items import (
    BatchReport,
    Claim,
    Claimant,
    Item,
    ItemAvailability,
    ItemOutcome,
    ItemsView,
    MutationResult,
    build_items_view,
)
from event_registry.domain.models import Guest, UserRecord
from event_registry.errors import (
    BackendRejectedError,
    ClaimValidationError,
    RegistryError,
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimedItem:
    """A claim with its item and the guest it was made for, if any."""

    claim: Claim
    item: Item | None
    guest: Guest | None = None


@dataclass
class ClaimService:
    """Keeps every claim within its item's availability.

    Bounds are checked against a fetch made inside the same call, and every
    write is followed by a fresh read whose result is returned to the caller.
    """

    client: RegistryClient
    _generations: itertools.count = field(
        default_factory=lambda: itertools.count(1), init=False
    )

    async def fetch_view(self) -> ItemsView:
        """Read items and claims from the backend and derive availability."""
        items = await self.client.list_items()
        claims = await self.client.list_claims()
        return build_items_view(items, claims, generation=next(self._generations))

    async def list_claimable_items(self) -> list[ItemAvailability]:
        """Return items with units left to claim, sorted by name."""
        view = await self.fetch_view()
        return view.claimable()

    async def claim(
        self,
        item_name: str,
        claimant: Claimant,
        quantity: int,
        user_email: str | None = None,
    ) -> MutationResult:
        """Claim ``quantity`` units of an item for a claimant."""
        _require_positive(item_name, quantity)
        view = await self.fetch_view()
        _check_claim_bound(view, item_name, quantity)
        await self._write_claim(view, item_name, claimant, quantity, user_email)
        return MutationResult(
            item_name=item_name, view=await self.fetch_view(), quantity=quantity
        )

    async def claim_items(
        self,
        selection: Mapping[str, int],
        claimant: Claimant,
        user_email: str | None = None,
    ) -> BatchReport:
        """Claim several items independently and report each outcome.

        A failure on one item never blocks or rolls back the others.
        """
        try:
            view = await self.fetch_view()
        except RegistryError as exc:
            return BatchReport(
                outcomes=[
                    ItemOutcome(item_name=name, quantity=quantity, error=exc.message)
                    for name, quantity in sorted(selection.items())
                ]
            )

        outcomes: list[ItemOutcome] = []
        for item_name, quantity in sorted(selection.items()):
            try:
                _require_positive(item_name, quantity)
                _check_claim_bound(view, item_name, quantity)
                await self._write_claim(view, item_name, claimant, quantity, user_email)
            except RegistryError as exc:
                _logger.warning("Claim of %s x%s failed: %s", item_name, quantity, exc)
                outcomes.append(
                    ItemOutcome(
                        item_name=item_name, quantity=quantity, error=exc.message
                    )
                )
            else:
                outcomes.append(ItemOutcome(item_name=item_name, quantity=quantity))

        return BatchReport(outcomes=outcomes, view=await self._refresh_quietly())

    async def update_claim_quantity(
        self, claimant: Claimant, item_name: str, new_quantity: int
    ) -> MutationResult:
        """Change a claim's quantity within its own reservation plus availability."""
        _require_positive(item_name, new_quantity)
        view = await self.fetch_view()
        existing = view.claim_for(claimant, item_name)
        if existing is None:
            raise ClaimValidationError(
                f"No claim on '{item_name}' for {claimant.name} to update.",
                item_name=item_name,
            )
        availability = view.availability(item_name)
        remaining = availability.available if availability else 0
        maximum = existing.quantity + remaining
        if new_quantity > maximum:
            raise ClaimValidationError(
                f"Quantity for '{item_name}' can be at most {maximum}; "
                f"requested {new_quantity}.",
                item_name=item_name,
                maximum=maximum,
            )
        await self.client.update_claim(
            claimant.name, claimant.number, item_name, new_quantity
        )
        return MutationResult(
            item_name=item_name, view=await self.fetch_view(), quantity=new_quantity
        )

    async def unclaim(self, claimant: Claimant, item_name: str) -> MutationResult:
        """Remove a claim; a claim that is already gone counts as removed."""
        try:
            await self.client.delete_claim(claimant.name, claimant.number, item_name)
        except BackendRejectedError as exc:
            if not exc.is_not_found:
                raise
            _logger.info(
                "Claim on %s for %s was already removed", item_name, claimant.name
            )
        return MutationResult(item_name=item_name, view=await self.fetch_view())

    async def delete_item(self, item_name: str) -> MutationResult:
        """Delete an item together with every claim against it."""
        try:
            await self.client.delete_item_claims(item_name)
        except BackendRejectedError as exc:
            if not exc.is_not_found:
                raise
        await self.client.delete_item(item_name)
        return MutationResult(item_name=item_name, view=await self.fetch_view())

    async def find_claim(self, claimant: Claimant, item_name: str) -> Claim | None:
        """Return the claimant's current claim on an item, if any."""
        for claim in await self.client.list_item_claims(item_name):
            if claim.claimant == claimant:
                return claim
        return None

    async def claims_for_user(
        self, user: UserRecord, guests: list[Guest]
    ) -> list[ClaimedItem]:
        """Return claims made by the user or for one of their guests.

        Items with nothing left to claim are still included.
        """
        view = await self.fetch_view()
        guests_by_claimant = {guest.claimant: guest for guest in guests}
        owned: list[ClaimedItem] = []
        for claim in view.claims:
            guest = guests_by_claimant.get(claim.claimant)
            if (
                guest is None
                and claim.claimant != user.claimant
                and claim.user_email != user.email
            ):
                continue
            availability = view.availability(claim.item_name)
            owned.append(
                ClaimedItem(
                    claim=claim,
                    item=availability.item if availability else None,
                    guest=guest,
                )
            )
        return sorted(
            owned,
            key=lambda entry: (entry.claim.item_name, entry.claim.claimant.name),
        )

    async def _write_claim(
        self,
        view: ItemsView,
        item_name: str,
        claimant: Claimant,
        quantity: int,
        user_email: str | None,
    ) -> None:
        existing = view.claim_for(claimant, item_name)
        if existing is not None:
            await self.client.update_claim(
                claimant.name, claimant.number, item_name, existing.quantity + quantity
            )
            return
        await self.client.create_claim(
            Claim(
                claimant=claimant,
                item_name=item_name,
                quantity=quantity,
                user_email=user_email,
            )
        )

    async def _refresh_quietly(self) -> ItemsView | None:
        try:
            return await self.fetch_view()
        except RegistryError:
            _logger.warning("Could not refresh items after batch claim", exc_info=True)
            return None


def _require_positive(item_name: str, quantity: int) -> None:
    if quantity < 1:
        raise ClaimValidationError(
            f"Quantity for '{item_name}' must be at least 1.", item_name=item_name
        )


def _check_claim_bound(view: ItemsView, item_name: str, quantity: int) -> None:
    availability = view.availability(item_name)
    if availability is None:
        raise ClaimValidationError(
            f"Item '{item_name}' is no longer listed.", item_name=item_name, maximum=0
        )
    if quantity > availability.available:
        raise ClaimValidationError(
            f"Only {availability.available} of '{item_name}' left to claim; "
            f"requested {quantity}.",
            item_name=item_name,
            maximum=availability.available,
        )
