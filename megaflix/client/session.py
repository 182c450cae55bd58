"""
Client-side login session.

One ``Session`` object owns the token and the signed-in user. It is created
by the caller and handed to whatever needs it; ``load()`` restores it from
disk and ``clear()`` wipes both memory and disk on logout.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_SESSION_FILE = Path.home() / ".megaflix" / "session.json"


class SessionStore:
    """JSON file holding ``{"token": ..., "user": {...}}``"""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_SESSION_FILE

    def read(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Ignoring unreadable session file {self.path}: {e}")
            return None

    def write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class Session:
    def __init__(self, store: Optional[SessionStore] = None):
        self.store = store or SessionStore()
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None

    def load(self) -> "Session":
        """Restore token and user saved by a previous login"""
        data = self.store.read() or {}
        token, user = data.get("token"), data.get("user")
        if token and isinstance(user, dict):
            self.token, self.user = token, user
        else:
            self.token, self.user = None, None
        return self

    def start(self, token: str, user: Dict[str, Any]) -> None:
        self.token, self.user = token, user
        self.store.write({"token": token, "user": user})
        logger.info(f"🔑 Session started for {user.get('username')}")

    def clear(self) -> None:
        self.token, self.user = None, None
        self.store.clear()
        logger.info("👋 Session cleared")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token and self.user)

    @property
    def is_admin(self) -> bool:
        return bool(self.user and self.user.get("is_admin"))

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}
