"""Registry backend REST client."""

from dataclasses import dataclass
from typing import Any, Protocol, TypeVar
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from event_registry.adapters.registry_models import (
    ClaimPayload,
    Envelope,
    GuestPayload,
    ItemPayload,
    UserPayload,
    claim_to_payload,
    item_to_payload,
)
from event_registry.domain.items import Claim, Item
from event_registry.domain.models import Guest, UserRecord
from event_registry.errors import BackendRejectedError, ConnectivityError

ModelT = TypeVar("ModelT", ItemPayload, ClaimPayload, GuestPayload, UserPayload)


class RegistryClient(Protocol):
    """Interface for the event registry backend."""

    async def register_user(self, payload: dict[str, object]) -> UserRecord:
        """Create a user account."""

    async def get_user(self, email: str) -> UserRecord:
        """Fetch a user by email."""

    async def update_user(self, email: str, payload: dict[str, object]) -> UserRecord:
        """Update a user's profile."""

    async def list_user_guests(self, email: str) -> list[Guest]:
        """Return guests attached to a user record."""

    async def list_guests(self, user_email: str) -> list[Guest]:
        """Return guests created by a user."""

    async def create_guest(self, guest: Guest) -> Guest:
        """Create a guest."""

    async def update_guest(
        self, name: str, number: str, payload: dict[str, object]
    ) -> Guest:
        """Update a guest."""

    async def delete_guest(self, name: str, number: str) -> None:
        """Delete a guest."""

    async def list_items(self) -> list[Item]:
        """Return all items."""

    async def list_claimed_items(self) -> list[Item]:
        """Return items the backend marks as claimed."""

    async def list_unclaimed_items(self) -> list[Item]:
        """Return items the backend marks as unclaimed."""

    async def create_item(self, item: Item) -> Item:
        """Create an item."""

    async def delete_item(self, item_name: str) -> None:
        """Delete an item."""

    async def claim_item(self, item_name: str, claim: Claim) -> None:
        """Mark an item claimed through the item endpoint."""

    async def unclaim_item(self, item_name: str) -> None:
        """Mark an item unclaimed through the item endpoint."""

    async def list_claims(self) -> list[Claim]:
        """Return all claims."""

    async def list_guest_claims(self, name: str, number: str) -> list[Claim]:
        """Return claims held by one claimant."""

    async def list_item_claims(self, item_name: str) -> list[Claim]:
        """Return claims against one item."""

    async def create_claim(self, claim: Claim) -> Claim:
        """Create a claim."""

    async def update_claim(
        self, name: str, number: str, item_name: str, quantity: int
    ) -> Claim:
        """Set a claim's quantity."""

    async def delete_claim(self, name: str, number: str, item_name: str) -> None:
        """Delete one claim."""

    async def delete_guest_claims(self, name: str, number: str) -> None:
        """Delete every claim held by one claimant."""

    async def delete_item_claims(self, item_name: str) -> None:
        """Delete every claim against one item."""


@dataclass
class HttpxRegistryClient(RegistryClient):
    """Registry client implemented with httpx."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15.0

    @classmethod
    def create(
        cls, base_url: str, timeout_seconds: float = 15.0
    ) -> "HttpxRegistryClient":
        """Create a registry client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(
                headers={"Content-Type": "application/json"}
            ),
            timeout_seconds=timeout_seconds,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    async def register_user(self, payload: dict[str, object]) -> UserRecord:
        data = await self._request("POST", "/users", json=payload)
        return _parse(UserPayload, data).to_record()

    async def get_user(self, email: str) -> UserRecord:
        data = await self._request("GET", f"/users/{_segment(email)}")
        return _parse(UserPayload, data).to_record()

    async def update_user(self, email: str, payload: dict[str, object]) -> UserRecord:
        data = await self._request("PUT", f"/users/{_segment(email)}", json=payload)
        return _parse(UserPayload, data).to_record()

    async def list_user_guests(self, email: str) -> list[Guest]:
        data = await self._request("GET", f"/users/{_segment(email)}/guests")
        if isinstance(data, dict):
            data = data.get("guests", [])
        return [guest.to_guest() for guest in _parse_list(GuestPayload, data)]

    async def list_guests(self, user_email: str) -> list[Guest]:
        data = await self._request("GET", f"/guests/user/{_segment(user_email)}")
        return [guest.to_guest() for guest in _parse_list(GuestPayload, data)]

    async def create_guest(self, guest: Guest) -> Guest:
        payload = {
            "name": guest.name,
            "number": guest.number,
            "user_email": guest.user_email,
        }
        data = await self._request("POST", "/guests", json=payload)
        return _parse(GuestPayload, data).to_guest()

    async def update_guest(
        self, name: str, number: str, payload: dict[str, object]
    ) -> Guest:
        data = await self._request(
            "PUT", f"/guests/{_segment(name)}/{_segment(number)}", json=payload
        )
        return _parse(GuestPayload, data).to_guest()

    async def delete_guest(self, name: str, number: str) -> None:
        await self._request("DELETE", f"/guests/{_segment(name)}/{_segment(number)}")

    async def list_items(self) -> list[Item]:
        data = await self._request("GET", "/items")
        return [item.to_item() for item in _parse_list(ItemPayload, data)]

    async def list_claimed_items(self) -> list[Item]:
        data = await self._request("GET", "/items/claimed")
        return [item.to_item() for item in _parse_list(ItemPayload, data)]

    async def list_unclaimed_items(self) -> list[Item]:
        data = await self._request("GET", "/items/unclaimed")
        return [item.to_item() for item in _parse_list(ItemPayload, data)]

    async def create_item(self, item: Item) -> Item:
        data = await self._request("POST", "/items", json=item_to_payload(item))
        return _parse(ItemPayload, data).to_item()

    async def delete_item(self, item_name: str) -> None:
        await self._request("DELETE", f"/items/{_segment(item_name)}")

    async def claim_item(self, item_name: str, claim: Claim) -> None:
        await self._request(
            "POST",
            f"/items/{_segment(item_name)}/claim",
            json=claim_to_payload(claim),
        )

    async def unclaim_item(self, item_name: str) -> None:
        await self._request("POST", f"/items/{_segment(item_name)}/unclaim")

    async def list_claims(self) -> list[Claim]:
        data = await self._request("GET", "/claims")
        return [claim.to_claim() for claim in _parse_list(ClaimPayload, data)]

    async def list_guest_claims(self, name: str, number: str) -> list[Claim]:
        data = await self._request(
            "GET", f"/claims/guest/{_segment(name)}/{_segment(number)}"
        )
        return [claim.to_claim() for claim in _parse_list(ClaimPayload, data)]

    async def list_item_claims(self, item_name: str) -> list[Claim]:
        data = await self._request("GET", f"/claims/item/{_segment(item_name)}")
        return [claim.to_claim() for claim in _parse_list(ClaimPayload, data)]

    async def create_claim(self, claim: Claim) -> Claim:
        data = await self._request("POST", "/claims", json=claim_to_payload(claim))
        return _parse(ClaimPayload, data).to_claim()

    async def update_claim(
        self, name: str, number: str, item_name: str, quantity: int
    ) -> Claim:
        data = await self._request(
            "PUT",
            f"/claims/{_segment(name)}/{_segment(number)}/{_segment(item_name)}",
            json={"quantity": quantity},
        )
        return _parse(ClaimPayload, data).to_claim()

    async def delete_claim(self, name: str, number: str, item_name: str) -> None:
        await self._request(
            "DELETE",
            f"/claims/{_segment(name)}/{_segment(number)}/{_segment(item_name)}",
        )

    async def delete_guest_claims(self, name: str, number: str) -> None:
        await self._request(
            "DELETE", f"/claims/guest/{_segment(name)}/{_segment(number)}"
        )

    async def delete_item_claims(self, item_name: str) -> None:
        await self._request("DELETE", f"/claims/item/{_segment(item_name)}")

    async def _request(
        self, method: str, path: str, json: dict[str, object] | None = None
    ) -> Any:
        """Send a request and unwrap the response envelope."""
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                timeout=self.timeout_seconds,
            )
        except httpx.TransportError as exc:
            raise ConnectivityError() from exc

        envelope = _read_envelope(response)
        if response.is_error or envelope is None or not envelope.success:
            raise BackendRejectedError(
                envelope.error_message if envelope else None,
                status_code=response.status_code,
            )
        return envelope.data


def _segment(value: str) -> str:
    """Encode a value for use as a single path segment."""
    return quote(value, safe="")


def _read_envelope(response: httpx.Response) -> Envelope | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    try:
        return Envelope.model_validate(payload)
    except ValidationError:
        return None


def _parse(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise BackendRejectedError(f"Unexpected response from server: {exc}") from exc


def _parse_list(model: type[ModelT], data: Any) -> list[ModelT]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise BackendRejectedError("Unexpected response from server: expected a list")
    return [_parse(model, row) for row in data]
