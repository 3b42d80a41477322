"""File-backed storage for the persisted session record."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from event_registry.adapters.registry_models import UserPayload, user_to_payload
from event_registry.domain.models import UserRecord

STORAGE_KEY = "azbs_user"

_logger = logging.getLogger(__name__)


@dataclass
class FileSessionStore:
    """Keeps the signed-in user in a JSON file under a fixed key."""

    path: Path
    key: str = STORAGE_KEY

    def load(self) -> UserRecord | None:
        """Return the stored user; unreadable or corrupt records count as absent."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError:
            _logger.warning("Failed to read session store %s", self.path, exc_info=True)
            return None
        try:
            record = json.loads(raw)[self.key]
            return UserPayload.model_validate(record).to_record()
        except (ValueError, KeyError, TypeError, ValidationError):
            _logger.warning("Ignoring corrupt session record in %s", self.path)
            return None

    def save(self, user: UserRecord) -> None:
        """Persist the user record."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps({self.key: user_to_payload(user)}), encoding="utf-8"
            )
        except OSError:
            _logger.exception("Failed to write session store %s", self.path)

    def clear(self) -> None:
        """Remove the persisted record, if any."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError:
            _logger.exception("Failed to clear session store %s", self.path)
