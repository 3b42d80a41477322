"""Admin tools: item seeding, bulk deletion and claim export."""

import csv
import io
import logging
from dataclasses import dataclass, field

from event_registry.adapters.registry_client import RegistryClient
from event_registry.domain.items import BatchReport, Item, ItemOutcome
from event_registry.errors import RegistryError
from event_registry.services.claims import ClaimService

DEFAULT_SEED_ITEMS = [
    Item(name="Baby Bath Tub", total_quantity=1),
    Item(name="Baby Blankets", total_quantity=4),
    Item(name="Baby Wipes", total_quantity=10),
    Item(name="Bibs", total_quantity=6),
    Item(name="Bottle Set", total_quantity=2),
    Item(name="Burp Cloths", total_quantity=6),
    Item(name="Diapers Size 1", total_quantity=8),
    Item(name="Diapers Size 2", total_quantity=8),
    Item(name="Nappy Cream", total_quantity=4),
    Item(name="Onesies 0-3 Months", total_quantity=6),
]

CLAIM_EXPORT_COLUMNS = [
    "item_name",
    "claimant_name",
    "claimant_number",
    "quantity",
    "user_email",
]

_logger = logging.getLogger(__name__)


@dataclass
class AdminService:
    """Service for admin-only maintenance operations."""

    client: RegistryClient
    claim_service: ClaimService
    seed_items: list[Item] = field(default_factory=lambda: list(DEFAULT_SEED_ITEMS))

    async def add_seed_items(self) -> BatchReport:
        """Create every seed item, reporting each result."""
        outcomes: list[ItemOutcome] = []
        for item in self.seed_items:
            try:
                await self.client.create_item(item)
            except RegistryError as exc:
                _logger.warning("Failed to add item %s: %s", item.name, exc)
                outcomes.append(
                    ItemOutcome(item.name, item.total_quantity, error=exc.message)
                )
            else:
                outcomes.append(ItemOutcome(item.name, item.total_quantity))
        return await self._report(outcomes)

    async def delete_seed_items(self) -> BatchReport:
        """Delete every seed item and its claims, reporting each result."""
        outcomes: list[ItemOutcome] = []
        for item in self.seed_items:
            try:
                await self.claim_service.delete_item(item.name)
            except RegistryError as exc:
                _logger.warning("Failed to delete item %s: %s", item.name, exc)
                outcomes.append(
                    ItemOutcome(item.name, item.total_quantity, error=exc.message)
                )
            else:
                outcomes.append(ItemOutcome(item.name, item.total_quantity))
        return await self._report(outcomes)

    async def claimed_items(self) -> list[Item]:
        """Return items the backend reports as claimed."""
        return await self.client.list_claimed_items()

    async def export_claims_csv(self) -> str:
        """Return every claim as CSV, ordered by item then claimant."""
        claims = await self.client.list_claims()
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CLAIM_EXPORT_COLUMNS)
        for claim in sorted(
            claims, key=lambda row: (row.item_name, row.claimant.name)
        ):
            writer.writerow(
                [
                    claim.item_name,
                    claim.claimant.name,
                    claim.claimant.number,
                    claim.quantity,
                    claim.user_email or "",
                ]
            )
        return buffer.getvalue()

    async def _report(self, outcomes: list[ItemOutcome]) -> BatchReport:
        try:
            view = await self.claim_service.fetch_view()
        except RegistryError:
            _logger.warning("Could not refresh items after admin batch", exc_info=True)
            view = None
        return BatchReport(
            outcomes=sorted(outcomes, key=lambda outcome: outcome.item_name),
            view=view,
        )
