"""Pydantic models for request bodies."""

from typing import Literal

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Login form."""

    email: str
    password: str


class ProfileRequest(BaseModel):
    """Registration and profile form."""

    email: str
    name: str
    number: str
    password: str
    role: str = "guest"


class SelectionRequest(BaseModel):
    """Select an item, or change its selected quantity."""

    item_name: str
    quantity: int = 1


class ClaimBatchRequest(BaseModel):
    """Confirm the current selection for the user or a guest."""

    claim_for: Literal["self", "guest"] = "self"
    guest_name: str = ""
    guest_number: str = ""


class ClaimQuantityRequest(BaseModel):
    """New quantity for an existing claim."""

    quantity: int
    guest_name: str | None = None
    guest_number: str | None = None


class GuestCreateRequest(BaseModel):
    """New guest form."""

    name: str = ""
    number: str = ""


class RsvpRequest(BaseModel):
    """RSVP toggle."""

    going: bool = Field(description="True when the guest is attending")
