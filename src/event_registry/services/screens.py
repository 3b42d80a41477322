"""Per-screen view state for the item list."""

from dataclasses import dataclass, field

from event_registry.domain.items import BatchReport, ItemsView
from event_registry.errors import ClaimValidationError


@dataclass
class ClaimSelection:
    """Items picked for a batch claim, keyed by item name."""

    quantities: dict[str, int] = field(default_factory=dict)

    @property
    def total_quantity(self) -> int:
        return sum(self.quantities.values())

    def toggle(self, item_name: str) -> bool:
        """Select an item with quantity 1, or drop it if already selected."""
        if item_name in self.quantities:
            del self.quantities[item_name]
            return False
        self.quantities[item_name] = 1
        return True

    def set_quantity(self, item_name: str, quantity: int, maximum: int) -> None:
        """Set a selected quantity; out-of-range values are rejected, not clamped."""
        if quantity < 1 or quantity > maximum:
            raise ClaimValidationError(
                f"Quantity for '{item_name}' must be between 1 and {maximum}.",
                item_name=item_name,
                maximum=maximum,
            )
        self.quantities[item_name] = quantity

    def remove(self, item_name: str) -> None:
        self.quantities.pop(item_name, None)

    def clear(self) -> None:
        self.quantities.clear()

    def retain_failed(self, report: BatchReport) -> None:
        """Keep only the items whose claim failed so they can be retried."""
        self.quantities = {
            outcome.item_name: outcome.quantity for outcome in report.failed
        }


@dataclass
class ItemsScreen:
    """State owned by the item list screen.

    Refreshes are applied only when newer than what the screen holds, and are
    dropped once the screen has been closed.
    """

    selection: ClaimSelection = field(default_factory=ClaimSelection)
    view: ItemsView | None = None
    closed: bool = False

    def apply(self, view: ItemsView | None) -> bool:
        """Adopt a freshly fetched view; return False if it was discarded."""
        if view is None or self.closed:
            return False
        if self.view is not None and view.generation <= self.view.generation:
            return False
        self.view = view
        return True

    def apply_report(self, report: BatchReport) -> None:
        """Record a batch claim: succeeded items leave the selection."""
        if self.closed:
            return
        self.selection.retain_failed(report)
        self.apply(report.view)

    def reset(self) -> None:
        """Drop all claim state, e.g. when the session ends."""
        self.selection.clear()
        self.view = None

    def close(self) -> None:
        self.reset()
        self.closed = True
