"""Client session state and its on-disk persistence."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from src.core.config import settings
from src.core.errors import ClientError
from src.domain.base import CamelModel
from src.domain.user import UserPublic


logger = logging.getLogger(__name__)

SESSION_REQUIRED_MESSAGE = "Session expired. Please log in again."


class StoredSession(CamelModel):
    """Token and profile as persisted between runs."""

    token: str
    user: UserPublic


class CredentialStore:
    """JSON file holding the last session so it survives restarts."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or settings.credentials_path)

    def load(self) -> StoredSession | None:
        """Return the stored session, or None if absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            return StoredSession.model_validate(json.loads(self.path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Discarding unreadable stored session: %s", e)
            return None

    def save(self, session: StoredSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(session.model_dump_json(by_alias=True), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SessionContext:
    """Explicit session state shared by the API client and workflows.

    The token and user are held in memory; a CredentialStore, when given,
    mirrors every change to disk.
    """

    def __init__(self, store: CredentialStore | None = None) -> None:
        self._store = store
        self._token: str | None = None
        self._user: UserPublic | None = None

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def user(self) -> UserPublic | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def start(self, token: str, user: UserPublic) -> None:
        """Begin a session after register or login."""
        self._token = token
        self._user = user
        if self._store is not None:
            self._store.save(StoredSession(token=token, user=user))
        logger.info("Session started", extra={"user_id": user.id})

    def update_user(self, user: UserPublic) -> None:
        """Replace the cached profile, keeping the token."""
        if self._token is None:
            return
        self.start(self._token, user)

    def restore(self) -> bool:
        """Load a persisted session. Returns True if one was found."""
        if self._store is None:
            return False
        stored = self._store.load()
        if stored is None:
            return False
        self._token = stored.token
        self._user = stored.user
        return True

    def clear(self) -> None:
        """Forget the token and profile, in memory and on disk."""
        self._token = None
        self._user = None
        if self._store is not None:
            self._store.clear()

    def require_token(self) -> str:
        """Return the token, raising ClientError when there is no session."""
        if self._token is None:
            raise ClientError(SESSION_REQUIRED_MESSAGE, status_code=None)
        return self._token

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.require_token()}"}
