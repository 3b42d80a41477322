"""Domain models for the client session."""

from dataclasses import dataclass
from enum import StrEnum

from event_registry.domain.models import UserRecord


class SessionState(StrEnum):
    """Idle-timeout states of the client session."""

    LOGGED_OUT = "logged_out"
    ACTIVE = "active"
    WARNED = "warned"
    EXPIRED = "expired"


@dataclass(frozen=True)
class SessionStatus:
    """Snapshot of the session for display."""

    state: SessionState
    user: UserRecord | None
    loading: bool
    warning_visible: bool
    countdown_seconds: int | None
    redirect_to: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None
