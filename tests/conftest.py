"""Shared test fixtures."""

from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from event_registry.adapters.registry_client import RegistryClient
from event_registry.config import Settings
from event_registry.containers import (
    AppContainer,
    build_banking_service,
    wire_session_cleanup,
)
from event_registry.domain.items import Claim, Claimant, Item
from event_registry.domain.models import Guest, UserRecord
from event_registry.errors import BackendRejectedError, ConnectivityError
from event_registry.services.admin import AdminService
from event_registry.services.claims import ClaimService
from event_registry.services.guests import GuestService
from event_registry.services.screens import ItemsScreen
from event_registry.services.sessions import InactivityTicker, SessionService
from event_registry.services.users import UserService

ClaimKey = tuple[str, str, str]


@dataclass
class FakeClock:
    """Manually advanced monotonic clock."""

    now: float = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class InMemorySessionStore:
    """In-memory session store for tests."""

    user: UserRecord | None = None
    saves: int = 0
    clears: int = 0

    def load(self) -> UserRecord | None:
        return self.user

    def save(self, user: UserRecord) -> None:
        self.user = user
        self.saves += 1

    def clear(self) -> None:
        self.user = None
        self.clears += 1


@dataclass
class FakeRegistryClient(RegistryClient):
    """In-memory registry backend.

    ``rejected_items`` makes claim writes on those items fail as the backend
    would for stock it no longer has. ``before_claim_write`` runs before every
    claim write so tests can interleave another client's change.
    """

    users: dict[str, UserRecord] = field(default_factory=dict)
    guests: dict[tuple[str, str], Guest] = field(default_factory=dict)
    items: dict[str, Item] = field(default_factory=dict)
    claims: dict[ClaimKey, Claim] = field(default_factory=dict)
    rejected_items: set[str] = field(default_factory=set)
    offline: bool = False
    before_claim_write: Callable[[], None] | None = None
    calls: list[str] = field(default_factory=list)

    def add_item(self, name: str, total: int) -> Item:
        item = Item(name=name, total_quantity=total)
        self.items[name] = item
        return item

    def add_claim(self, claimant: Claimant, item_name: str, quantity: int) -> None:
        self.claims[(claimant.name, claimant.number, item_name)] = Claim(
            claimant=claimant, item_name=item_name, quantity=quantity
        )

    def claimed_total(self, item_name: str) -> int:
        return sum(
            claim.quantity
            for claim in self.claims.values()
            if claim.item_name == item_name
        )

    def _record(self, call: str) -> None:
        if self.offline:
            raise ConnectivityError()
        self.calls.append(call)

    async def register_user(self, payload: dict[str, object]) -> UserRecord:
        self._record("register_user")
        email = str(payload["email"])
        if email in self.users:
            raise BackendRejectedError("User already exists", status_code=409)
        user = UserRecord(
            email=email,
            name=str(payload["name"]),
            number=str(payload["number"]),
            role=str(payload.get("role", "guest")),
            password=str(payload["password"]),
        )
        self.users[email] = user
        return user

    async def get_user(self, email: str) -> UserRecord:
        self._record("get_user")
        if email not in self.users:
            raise BackendRejectedError("User not found", status_code=404)
        return self.users[email]

    async def update_user(self, email: str, payload: dict[str, object]) -> UserRecord:
        self._record("update_user")
        current = self.users.pop(email)
        user = UserRecord(
            email=str(payload.get("email", current.email)),
            name=str(payload.get("name", current.name)),
            number=str(payload.get("number", current.number)),
            role=str(payload.get("role", current.role)),
            password=str(payload.get("password", current.password)),
        )
        self.users[user.email] = user
        return user

    async def list_user_guests(self, email: str) -> list[Guest]:
        return await self.list_guests(email)

    async def list_guests(self, user_email: str) -> list[Guest]:
        self._record("list_guests")
        return [
            guest for guest in self.guests.values() if guest.user_email == user_email
        ]

    async def create_guest(self, guest: Guest) -> Guest:
        self._record("create_guest")
        self.guests[(guest.name, guest.number)] = guest
        return guest

    async def update_guest(
        self, name: str, number: str, payload: dict[str, object]
    ) -> Guest:
        self._record("update_guest")
        current = self.guests[(name, number)]
        guest = Guest(
            name=name,
            number=number,
            user_email=current.user_email,
            going=bool(payload.get("going", current.going)),
        )
        self.guests[(name, number)] = guest
        return guest

    async def delete_guest(self, name: str, number: str) -> None:
        self._record("delete_guest")
        if self.guests.pop((name, number), None) is None:
            raise BackendRejectedError("Guest not found", status_code=404)

    async def list_items(self) -> list[Item]:
        self._record("list_items")
        return list(self.items.values())

    async def list_claimed_items(self) -> list[Item]:
        self._record("list_claimed_items")
        return [item for item in self.items.values() if self.claimed_total(item.name)]

    async def list_unclaimed_items(self) -> list[Item]:
        self._record("list_unclaimed_items")
        return [
            item for item in self.items.values() if not self.claimed_total(item.name)
        ]

    async def create_item(self, item: Item) -> Item:
        self._record("create_item")
        if item.name in self.items:
            raise BackendRejectedError("Item already exists", status_code=409)
        self.items[item.name] = item
        return item

    async def delete_item(self, item_name: str) -> None:
        self._record("delete_item")
        if self.items.pop(item_name, None) is None:
            raise BackendRejectedError("Item not found", status_code=404)

    async def claim_item(self, item_name: str, claim: Claim) -> None:
        await self.create_claim(claim)

    async def unclaim_item(self, item_name: str) -> None:
        await self.delete_item_claims(item_name)

    async def list_claims(self) -> list[Claim]:
        self._record("list_claims")
        return list(self.claims.values())

    async def list_guest_claims(self, name: str, number: str) -> list[Claim]:
        self._record("list_guest_claims")
        return [
            claim
            for (claim_name, claim_number, _), claim in self.claims.items()
            if (claim_name, claim_number) == (name, number)
        ]

    async def list_item_claims(self, item_name: str) -> list[Claim]:
        self._record("list_item_claims")
        return [claim for claim in self.claims.values() if claim.item_name == item_name]

    async def create_claim(self, claim: Claim) -> Claim:
        self._record("create_claim")
        self._before_write()
        key = (claim.claimant.name, claim.claimant.number, claim.item_name)
        self._check_stock(claim.item_name, claim.quantity, released=0)
        if key in self.claims:
            raise BackendRejectedError("Claim already exists", status_code=409)
        self.claims[key] = claim
        return claim

    async def update_claim(
        self, name: str, number: str, item_name: str, quantity: int
    ) -> Claim:
        self._record("update_claim")
        self._before_write()
        key = (name, number, item_name)
        current = self.claims.get(key)
        if current is None:
            raise BackendRejectedError("Claim not found", status_code=404)
        self._check_stock(item_name, quantity, released=current.quantity)
        updated = Claim(
            claimant=current.claimant,
            item_name=item_name,
            quantity=quantity,
            user_email=current.user_email,
        )
        self.claims[key] = updated
        return updated

    async def delete_claim(self, name: str, number: str, item_name: str) -> None:
        self._record("delete_claim")
        if self.claims.pop((name, number, item_name), None) is None:
            raise BackendRejectedError("Claim not found", status_code=404)

    async def delete_guest_claims(self, name: str, number: str) -> None:
        self._record("delete_guest_claims")
        for key in [key for key in self.claims if key[:2] == (name, number)]:
            del self.claims[key]

    async def delete_item_claims(self, item_name: str) -> None:
        self._record("delete_item_claims")
        for key in [key for key in self.claims if key[2] == item_name]:
            del self.claims[key]

    def _before_write(self) -> None:
        if self.before_claim_write is not None:
            hook = self.before_claim_write
            self.before_claim_write = None
            hook()

    def _check_stock(self, item_name: str, quantity: int, released: int) -> None:
        if item_name in self.rejected_items:
            raise BackendRejectedError(f"{item_name} is out of stock", status_code=400)
        item = self.items.get(item_name)
        if item is None:
            raise BackendRejectedError("Item not found", status_code=404)
        remaining = item.total_quantity - self.claimed_total(item_name) + released
        if quantity > remaining:
            raise BackendRejectedError("Not enough quantity available", status_code=400)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        api_url="https://registry.test/api",
        session_store_path=tmp_path / "session.json",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def registry_client() -> FakeRegistryClient:
    return FakeRegistryClient()


@pytest.fixture
def alice() -> UserRecord:
    return UserRecord(
        email="alice@example.com",
        name="Alice Smith",
        number="0820000000",
        role="guest",
        password="secret1",
    )


@pytest.fixture
def admin_user() -> UserRecord:
    return UserRecord(
        email="admin@example.com",
        name="Ada Admin",
        number="0830000000",
        role="Admin",
        password="secret1",
    )


@pytest.fixture
def container(
    settings: Settings,
    registry_client: FakeRegistryClient,
    session_store: InMemorySessionStore,
    clock: FakeClock,
) -> AppContainer:
    session_service = SessionService(
        store=session_store,
        timeout_seconds=settings.inactivity_timeout_seconds,
        warning_seconds=settings.inactivity_warning_seconds,
        clock=clock,
    )
    claim_service = ClaimService(registry_client)
    items_screen = ItemsScreen()
    wire_session_cleanup(session_service, items_screen)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        registry_client=registry_client,
        session_service=session_service,
        inactivity_ticker=InactivityTicker(session_service, interval_seconds=3600),
        user_service=UserService(registry_client),
        guest_service=GuestService(registry_client),
        claim_service=claim_service,
        admin_service=AdminService(registry_client, claim_service),
        banking_service=build_banking_service(settings),
        items_screen=items_screen,
        close_resources=close_resources,
    )
