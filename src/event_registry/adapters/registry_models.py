"""Pydantic models for registry backend payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from event_registry.domain.items import Claim, Claimant, Item
from event_registry.domain.models import Guest, UserRecord


class Envelope(BaseModel):
    """Response envelope shared by every backend endpoint."""

    success: bool = False
    data: Any = None
    error: str | None = None
    message: str | None = None

    @property
    def error_message(self) -> str | None:
        return self.error or self.message


class UserPayload(BaseModel):
    """User payload."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    email: str
    name: str = ""
    number: str = ""
    role: str = "guest"
    password: str | None = None

    def to_record(self) -> UserRecord:
        return UserRecord(
            email=self.email,
            name=self.name,
            number=self.number,
            role=self.role or "guest",
            password=self.password,
        )


class GuestPayload(BaseModel):
    """Guest payload."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    name: str
    number: str
    user_email: str | None = None
    going: bool = False

    def to_guest(self) -> Guest:
        return Guest(
            name=self.name,
            number=self.number,
            user_email=self.user_email,
            going=self.going,
        )


class ItemPayload(BaseModel):
    """Gift item payload."""

    model_config = ConfigDict(extra="ignore")

    item_name: str
    item_count: int | None = Field(default=None, ge=0)
    item_photo: str | None = None
    item_link: str | None = None

    def to_item(self) -> Item:
        return Item(
            name=self.item_name,
            total_quantity=1 if self.item_count is None else self.item_count,
            photo_url=self.item_photo,
            link=self.item_link,
        )


class ClaimPayload(BaseModel):
    """Claim payload; one row per (guest name, guest number, item)."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    name: str
    number: str
    item_name: str
    quantity: int = Field(default=1, ge=0)
    user_email: str | None = None

    def to_claim(self) -> Claim:
        return Claim(
            claimant=Claimant(name=self.name, number=self.number),
            item_name=self.item_name,
            quantity=self.quantity,
            user_email=self.user_email,
        )


def user_to_payload(user: UserRecord) -> dict[str, object]:
    """Serialize a user for the backend and the session store."""
    return UserPayload(
        email=user.email,
        name=user.name,
        number=user.number,
        role=user.role,
        password=user.password,
    ).model_dump()


def item_to_payload(item: Item) -> dict[str, object]:
    return ItemPayload(
        item_name=item.name,
        item_count=item.total_quantity,
        item_photo=item.photo_url,
        item_link=item.link,
    ).model_dump(exclude_none=True)


def claim_to_payload(claim: Claim) -> dict[str, object]:
    return ClaimPayload(
        name=claim.claimant.name,
        number=claim.claimant.number,
        item_name=claim.item_name,
        quantity=claim.quantity,
        user_email=claim.user_email,
    ).model_dump(exclude_none=True)
