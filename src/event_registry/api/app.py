"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from event_registry.api.admin import router as admin_router
from event_registry.api.dependencies import get_container, require_user
from event_registry.api.schemas import (
    ClaimBatchRequest,
    ClaimQuantityRequest,
    GuestCreateRequest,
    LoginRequest,
    ProfileRequest,
    RsvpRequest,
    SelectionRequest,
)
from event_registry.api.serializers import (
    banking_json,
    claimed_item_json,
    guest_json,
    report_json,
    selection_json,
    session_json,
    stats_json,
    user_json,
    view_json,
)
from event_registry.app_logging import configure_logging
from event_registry.containers import AppContainer
from event_registry.domain.items import Claimant, ItemsView
from event_registry.domain.models import UserRecord
from event_registry.errors import (
    AuthenticationError,
    BackendRejectedError,
    ClaimValidationError,
    ConnectivityError,
    GuestValidationError,
    ValidationFailure,
)
from event_registry.services.guests import rsvp_stats

# Requests that poll state rather than signal user activity.
_PASSIVE_ROUTES = {("GET", "/health"), ("GET", "/session")}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        state_container.session_service.restore()
        state_container.inactivity_ticker.start()
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.middleware("http")
    async def track_activity(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        session_service = request.app.state.container.session_service
        # Deadlines that passed before this request are applied first.
        session_service.tick()
        if (request.method, request.url.path) not in _PASSIVE_ROUTES:
            session_service.on_activity()
        return await call_next(request)

    @app.exception_handler(ValidationFailure)
    async def validation_failed(
        request: Request, exc: ValidationFailure
    ) -> JSONResponse:
        body: dict[str, object] = {"error": exc.message}
        if isinstance(exc, ClaimValidationError):
            body["item_name"] = exc.item_name
            body["maximum"] = exc.maximum
        return JSONResponse(status_code=422, content=body)

    @app.exception_handler(AuthenticationError)
    async def authentication_failed(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        return JSONResponse(status_code=401, content={"error": exc.message})

    @app.exception_handler(ConnectivityError)
    async def backend_unreachable(
        request: Request, exc: ConnectivityError
    ) -> JSONResponse:
        logger.warning(
            "Backend unreachable for %s %s", request.method, request.url.path
        )
        return JSONResponse(status_code=503, content={"error": exc.message})

    @app.exception_handler(BackendRejectedError)
    async def backend_rejected(
        request: Request, exc: BackendRejectedError
    ) -> JSONResponse:
        logger.warning(
            "Backend rejected %s %s (status=%s): %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
        return JSONResponse(status_code=502, content={"error": exc.message})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/session")
    async def session_status(
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Return the session, ticking the idle timer first."""
        state_container.session_service.tick()
        return session_json(state_container.session_service.status())

    @app.post("/session/login")
    async def login(
        body: LoginRequest, state_container: AppContainer = Depends(get_container)
    ) -> dict[str, object]:
        user = await state_container.user_service.authenticate(
            body.email, body.password
        )
        state_container.session_service.login(user)
        return session_json(state_container.session_service.status())

    @app.post("/session/register")
    async def register(
        body: ProfileRequest, state_container: AppContainer = Depends(get_container)
    ) -> dict[str, object]:
        user = await state_container.user_service.register(body.model_dump())
        state_container.session_service.login(user)
        return session_json(state_container.session_service.status())

    @app.post("/session/logout")
    async def logout(
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        state_container.session_service.logout()
        return session_json(state_container.session_service.status())

    @app.post("/session/dismiss-warning")
    async def dismiss_warning(
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        state_container.session_service.dismiss_warning()
        return session_json(state_container.session_service.status())

    @app.put("/session/profile")
    async def update_profile(
        body: ProfileRequest,
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        updated = await state_container.user_service.update_profile(
            user, body.model_dump()
        )
        state_container.session_service.refresh_user(updated)
        return {"user": user_json(updated), "message": "Profile updated successfully!"}

    @app.get("/items")
    async def claimable_items(
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """List items with units left to claim."""
        view = await state_container.claim_service.fetch_view()
        screen = state_container.items_screen
        _apply_if_current(state_container, user, view)
        return {
            "items": view_json(view),
            "selection": selection_json(screen.selection),
        }

    @app.get("/items/selection")
    async def get_selection(
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        return selection_json(state_container.items_screen.selection)

    @app.post("/items/selection")
    async def select_item(
        body: SelectionRequest,
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Select an item or change its quantity within the current availability."""
        screen = state_container.items_screen
        if screen.view is None:
            _apply_if_current(
                state_container, user, await state_container.claim_service.fetch_view()
            )
        availability = screen.view.availability(body.item_name) if screen.view else None
        if availability is None or availability.available < 1:
            raise ClaimValidationError(
                f"'{body.item_name}' is not available to claim.",
                item_name=body.item_name,
                maximum=0,
            )
        screen.selection.set_quantity(
            body.item_name, body.quantity, availability.available
        )
        return selection_json(screen.selection)

    @app.delete("/items/selection/{item_name}")
    async def deselect_item(
        item_name: str,
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        state_container.items_screen.selection.remove(item_name)
        return selection_json(state_container.items_screen.selection)

    @app.post("/items/claim")
    async def claim_selection(
        body: ClaimBatchRequest,
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Claim every selected item for the user or a guest."""
        selection = dict(state_container.items_screen.selection.quantities)
        if not selection:
            raise ClaimValidationError("Please select at least one item to claim")
        claimant = _batch_claimant(user, body)
        report = await state_container.claim_service.claim_items(
            selection, claimant, user_email=user.email
        )
        if state_container.session_service.current_user == user:
            state_container.items_screen.apply_report(report)
        return {
            **report_json(report),
            "selection": selection_json(state_container.items_screen.selection),
        }

    @app.get("/claims/mine")
    async def my_claims(
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Items claimed by the user or their guests."""
        guests = await state_container.guest_service.list_guests(user)
        claimed = await state_container.claim_service.claims_for_user(user, guests)
        return {"claims": [claimed_item_json(entry) for entry in claimed]}

    @app.put("/claims/{item_name}")
    async def update_claim(
        item_name: str,
        body: ClaimQuantityRequest,
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        claimant = await _owned_claimant(
            state_container, user, body.guest_name, body.guest_number, item_name
        )
        result = await state_container.claim_service.update_claim_quantity(
            claimant, item_name, body.quantity
        )
        _apply_if_current(state_container, user, result.view)
        return {
            "item_name": item_name,
            "quantity": result.quantity,
            "items": view_json(result.view),
        }

    @app.delete("/claims/{item_name}")
    async def unclaim(
        item_name: str,
        guest_name: str | None = None,
        guest_number: str | None = None,
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        claimant = await _owned_claimant(
            state_container, user, guest_name, guest_number, item_name
        )
        result = await state_container.claim_service.unclaim(claimant, item_name)
        _apply_if_current(state_container, user, result.view)
        return {"item_name": item_name, "items": view_json(result.view)}

    @app.get("/guests")
    async def list_guests(
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        guests = await state_container.guest_service.list_guests(user)
        return {
            "guests": [guest_json(guest) for guest in guests],
            "stats": stats_json(rsvp_stats(guests)),
        }

    @app.post("/guests", status_code=status.HTTP_201_CREATED)
    async def add_guest(
        body: GuestCreateRequest,
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        guest = await state_container.guest_service.add_guest(
            user, body.name, body.number
        )
        return {"guest": guest_json(guest)}

    @app.put("/guests/{name}/{number}/rsvp")
    async def set_rsvp(
        name: str,
        number: str,
        body: RsvpRequest,
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        await _owned_claimant(state_container, user, name, number)
        guest = await state_container.guest_service.set_rsvp(name, number, body.going)
        return {"guest": guest_json(guest)}

    @app.delete("/guests/{name}/{number}")
    async def delete_guest(
        name: str,
        number: str,
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, str]:
        await _owned_claimant(state_container, user, name, number)
        await state_container.guest_service.delete_guest(name, number)
        return {"status": "deleted"}

    @app.get("/banking")
    async def banking(
        user: UserRecord = Depends(require_user),
        state_container: AppContainer = Depends(get_container),
    ) -> dict[str, str]:
        return banking_json(state_container.banking_service.details_for(user))

    return app


def _apply_if_current(
    container: AppContainer, user: UserRecord, view: ItemsView
) -> None:
    """Hand a refresh to the item screen unless the session changed meanwhile."""
    if container.session_service.current_user == user:
        container.items_screen.apply(view)


def _batch_claimant(user: UserRecord, body: ClaimBatchRequest) -> Claimant:
    if body.claim_for == "self":
        return user.claimant
    if not body.guest_name.strip():
        raise GuestValidationError("Guest name is required")
    if not body.guest_number.strip():
        raise GuestValidationError("Guest contact number is required")
    return Claimant(name=body.guest_name.strip(), number=body.guest_number.strip())


async def _owned_claimant(
    container: AppContainer,
    user: UserRecord,
    guest_name: str | None,
    guest_number: str | None,
    item_name: str | None = None,
) -> Claimant:
    """Resolve the claimant, allowing only the user and guests the user owns.

    A guest counts as owned when it is in the user's guest list or, for a claim
    on ``item_name``, when the user made that guest's claim. A claimant with no
    claim on the item is accepted, since there is nothing of anyone's to change.
    """
    if not guest_name and not guest_number:
        return user.claimant
    if not guest_name or not guest_number:
        raise GuestValidationError("Both guest name and number are required")
    if (guest_name, guest_number) == (user.claimant.name, user.claimant.number):
        return user.claimant
    guest = await container.guest_service.find_guest(user, guest_name, guest_number)
    if guest is not None:
        return guest.claimant
    if item_name is not None:
        claimant = Claimant(name=guest_name, number=guest_number)
        claim = await container.claim_service.find_claim(claimant, item_name)
        if claim is None or claim.user_email == user.email:
            return claimant
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="That guest does not belong to you",
    )
