"""Session lifecycle with an idle-timeout state machine.

An active session moves ``ACTIVE -> WARNED -> EXPIRED`` when no activity is
seen. The warning is raised ``warning_seconds`` before the timeout and shows a
countdown; any activity or an explicit dismissal restarts the idle window.
Time only advances through ``tick()``, so the machine can be driven with a
synthetic clock.
"""

import asyncio
import logging
import math
import time
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Protocol

from event_registry.domain.models import UserRecord
from event_registry.domain.sessions import SessionState, SessionStatus

TOTAL_TIMEOUT_SECONDS = 15 * 60
WARNING_WINDOW_SECONDS = 2 * 60
LOGIN_PATH = "/login"

_logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionState], None]


class SessionStore(Protocol):
    """Client-local storage for the session record."""

    def load(self) -> UserRecord | None:
        """Return the stored user, or None when absent or unreadable."""

    def save(self, user: UserRecord) -> None:
        """Persist the user record."""

    def clear(self) -> None:
        """Remove the persisted record."""


@dataclass(frozen=True)
class _TimerPair:
    warning_at: float
    expires_at: float


@dataclass
class SessionService:
    """Owns the signed-in user and the idle-timeout timers."""

    store: SessionStore
    timeout_seconds: float = TOTAL_TIMEOUT_SECONDS
    warning_seconds: float = WARNING_WINDOW_SECONDS
    clock: Callable[[], float] = time.monotonic
    _user: UserRecord | None = field(default=None, init=False)
    _loading: bool = field(default=True, init=False)
    _timers: _TimerPair | None = field(default=None, init=False)
    _warning_visible: bool = field(default=False, init=False)
    _expired: bool = field(default=False, init=False)
    _listeners: list[SessionListener] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        if not 0 <= self.warning_seconds < self.timeout_seconds:
            raise ValueError("warning window must be shorter than the timeout")

    @property
    def current_user(self) -> UserRecord | None:
        return self._user

    @property
    def loading(self) -> bool:
        """True until the persisted session has been consulted once."""
        return self._loading

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def warning_visible(self) -> bool:
        return self._warning_visible

    @property
    def state(self) -> SessionState:
        if self._user is None:
            return SessionState.EXPIRED if self._expired else SessionState.LOGGED_OUT
        if self._warning_visible:
            return SessionState.WARNED
        return SessionState.ACTIVE

    @property
    def countdown_seconds(self) -> int | None:
        """Whole seconds left before expiry while the warning is shown."""
        if not self._warning_visible or self._timers is None:
            return None
        remaining = self._timers.expires_at - self.clock()
        return max(math.ceil(remaining), 0)

    def status(self) -> SessionStatus:
        """Return a snapshot of the session for display."""
        state = self.state
        return SessionStatus(
            state=state,
            user=self._user,
            loading=self._loading,
            warning_visible=self._warning_visible,
            countdown_seconds=self.countdown_seconds,
            redirect_to=LOGIN_PATH if state is SessionState.EXPIRED else None,
        )

    def add_listener(self, listener: SessionListener) -> None:
        """Register a callback invoked on every state transition."""
        self._listeners.append(listener)

    def restore(self) -> UserRecord | None:
        """Load the persisted session once and start timers if one exists."""
        user = self.store.load()
        self._loading = False
        if user is not None:
            self._user = user
            self._expired = False
            self._reset_timers()
            _logger.info("Restored session for %s", user.email)
        return user

    def login(self, user: UserRecord) -> None:
        """Start a session for the user, replacing any existing one."""
        self._user = user
        self._expired = False
        self._loading = False
        self.store.save(user)
        self._reset_timers()
        self._notify(SessionState.ACTIVE)

    def refresh_user(self, user: UserRecord) -> None:
        """Replace the stored user record without touching the timers."""
        if self._user is None:
            return
        self._user = user
        self.store.save(user)

    def logout(self) -> None:
        """End the session and cancel all timers. Safe to call repeatedly."""
        was_signed_in = self._user is not None
        self._user = None
        self._timers = None
        self._warning_visible = False
        self._expired = False
        self.store.clear()
        if was_signed_in:
            self._notify(SessionState.LOGGED_OUT)

    def on_activity(self) -> None:
        """Handle a user activity signal by restarting the idle window."""
        if self._user is None:
            return
        was_warned = self._warning_visible
        self._reset_timers()
        if was_warned:
            self._notify(SessionState.ACTIVE)

    def dismiss_warning(self) -> None:
        """User confirmed presence; cancel the pending expiry."""
        self.on_activity()

    def tick(self) -> SessionState:
        """Advance the machine to the current clock reading."""
        timers = self._timers
        if self._user is None or timers is None:
            return self.state
        now = self.clock()
        if now >= timers.warning_at and not self._warning_visible:
            self._warning_visible = True
            _logger.info("Session for %s is about to expire", self._user.email)
            self._notify(SessionState.WARNED)
        if now >= timers.expires_at:
            self._expire()
        return self.state

    def _reset_timers(self) -> None:
        # One timer pair at a time: the new pair replaces the old one whole.
        now = self.clock()
        self._warning_visible = False
        self._timers = _TimerPair(
            warning_at=now + self.timeout_seconds - self.warning_seconds,
            expires_at=now + self.timeout_seconds,
        )

    def _expire(self) -> None:
        email = self._user.email if self._user else None
        self.logout()
        self._expired = True
        _logger.info("User %s logged out due to inactivity", email)
        self._notify(SessionState.EXPIRED)

    def _notify(self, state: SessionState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                _logger.exception("Session listener failed for state %s", state)


@dataclass
class InactivityTicker:
    """Drives ``SessionService.tick`` from the event loop."""

    session_service: SessionService
    interval_seconds: float = 1.0
    _task: asyncio.Task[None] | None = field(default=None, init=False)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking on the running loop; no-op if already started."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the ticking task and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.session_service.tick()
            except Exception:
                _logger.exception("Inactivity tick failed")
