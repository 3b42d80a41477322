"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from event_registry.adapters.file_session_store import FileSessionStore
from event_registry.adapters.registry_client import (
    HttpxRegistryClient,
    RegistryClient,
)
from event_registry.config import Settings, normalize_api_url
from event_registry.domain.sessions import SessionState
from event_registry.services.admin import AdminService
from event_registry.services.banking import BankingService
from event_registry.services.claims import ClaimService
from event_registry.services.guests import GuestService
from event_registry.services.screens import ItemsScreen
from event_registry.services.sessions import InactivityTicker, SessionService
from event_registry.services.users import UserService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    registry_client: RegistryClient
    session_service: SessionService
    inactivity_ticker: InactivityTicker
    user_service: UserService
    guest_service: GuestService
    claim_service: ClaimService
    admin_service: AdminService
    banking_service: BankingService
    items_screen: ItemsScreen
    close_resources: Callable[[], Awaitable[None]]


def wire_session_cleanup(
    session_service: SessionService, items_screen: ItemsScreen
) -> None:
    """Clear screen claim state whenever the session ends."""

    def on_session_change(state: SessionState) -> None:
        if state in {SessionState.LOGGED_OUT, SessionState.EXPIRED}:
            items_screen.reset()

    session_service.add_listener(on_session_change)


def build_banking_service(settings: Settings) -> BankingService:
    return BankingService(
        bank=settings.banking_bank,
        account_number=settings.banking_account_number,
        branch_code=settings.banking_branch_code,
        account_type=settings.banking_account_type,
        reference_prefix=settings.banking_reference_prefix,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    registry_client = HttpxRegistryClient.create(
        normalize_api_url(resolved_settings.api_url),
        timeout_seconds=resolved_settings.request_timeout_seconds,
    )
    session_service = SessionService(
        store=FileSessionStore(resolved_settings.session_store_path),
        timeout_seconds=resolved_settings.inactivity_timeout_seconds,
        warning_seconds=resolved_settings.inactivity_warning_seconds,
    )
    inactivity_ticker = InactivityTicker(
        session_service, interval_seconds=resolved_settings.inactivity_tick_seconds
    )
    claim_service = ClaimService(registry_client)
    items_screen = ItemsScreen()
    wire_session_cleanup(session_service, items_screen)

    async def close_resources() -> None:
        await inactivity_ticker.stop()
        await registry_client.close()

    return AppContainer(
        settings=resolved_settings,
        registry_client=registry_client,
        session_service=session_service,
        inactivity_ticker=inactivity_ticker,
        user_service=UserService(registry_client),
        guest_service=GuestService(registry_client),
        claim_service=claim_service,
        admin_service=AdminService(registry_client, claim_service),
        banking_service=build_banking_service(resolved_settings),
        items_screen=items_screen,
        close_resources=close_resources,
    )
