"""Domain models for gift items and claims."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Claimant:
    """The person bringing an item: the user or one of their guests."""

    name: str
    number: str


@dataclass(frozen=True)
class Item:
    """A gift item with its total quantity."""

    name: str
    total_quantity: int
    photo_url: str | None = None
    link: str | None = None


@dataclass(frozen=True)
class Claim:
    """A claimant's reservation of some quantity of an item.

    There is at most one claim per (claimant, item); extra units are expressed
    by raising the quantity.
    """

    claimant: Claimant
    item_name: str
    quantity: int
    user_email: str | None = None


@dataclass(frozen=True)
class ItemAvailability:
    """An item with its claimed and remaining quantities."""

    item: Item
    claimed: int

    @property
    def available(self) -> int:
        return max(self.item.total_quantity - self.claimed, 0)


@dataclass(frozen=True)
class ItemsView:
    """Availability derived from one authoritative fetch of items and claims."""

    items: dict[str, ItemAvailability]
    claims: list[Claim]
    generation: int

    def availability(self, item_name: str) -> ItemAvailability | None:
        """Return availability for an item, if the item exists."""
        return self.items.get(item_name)

    def claimable(self) -> list[ItemAvailability]:
        """Return items that still have units to claim, sorted by name."""
        return sorted(
            (entry for entry in self.items.values() if entry.available > 0),
            key=lambda entry: entry.item.name,
        )

    def claim_for(self, claimant: Claimant, item_name: str) -> Claim | None:
        """Return the claimant's claim on an item, if any."""
        for claim in self.claims:
            if claim.claimant == claimant and claim.item_name == item_name:
                return claim
        return None


def build_items_view(
    items: list[Item], claims: list[Claim], generation: int
) -> ItemsView:
    """Derive availability for every item from the claims against it."""
    claimed: dict[str, int] = {}
    for claim in claims:
        claimed[claim.item_name] = claimed.get(claim.item_name, 0) + claim.quantity
    return ItemsView(
        items={
            item.name: ItemAvailability(item=item, claimed=claimed.get(item.name, 0))
            for item in items
        },
        claims=list(claims),
        generation=generation,
    )


@dataclass(frozen=True)
class ItemOutcome:
    """Result of one item within a batch operation."""

    item_name: str
    quantity: int
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BatchReport:
    """Per-item results of a best-effort batch, ordered by item name."""

    outcomes: list[ItemOutcome] = field(default_factory=list)
    view: ItemsView | None = None

    @property
    def succeeded(self) -> list[ItemOutcome]:
        return [outcome for outcome in self.outcomes if outcome.succeeded]

    @property
    def failed(self) -> list[ItemOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    def summary(self) -> str:
        """Return a combined success and error message for display."""
        if not self.failed:
            total = sum(outcome.quantity for outcome in self.succeeded)
            return (
                f"Successfully processed {total} item(s) across "
                f"{len(self.succeeded)} product(s)."
            )
        if not self.succeeded:
            return "Failed to process any items. Please try again."
        names = ", ".join(outcome.item_name for outcome in self.failed)
        return (
            f"Processed {len(self.succeeded)} product(s). "
            f"{len(self.failed)} failed: {names}"
        )


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a claim mutation with availability re-read afterwards."""

    item_name: str
    view: ItemsView
    quantity: int | None = None
