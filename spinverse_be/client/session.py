"""
Admin dashboard session kept in a key/value store.

`storage` is any mutable mapping (a dict, a shelve, a keyring adapter);
the token and the serialized admin record live under fixed keys so a
restarted client can pick the session back up.
"""
import json
import logging
from typing import Any, Dict, MutableMapping, Optional

logger = logging.getLogger(__name__)

TOKEN_KEY = 'adminToken'
USER_KEY = 'adminUser'


class AdminSession:
    def __init__(self, storage: Optional[MutableMapping[str, str]] = None):
        self.storage = storage if storage is not None else {}
        self.token: Optional[str] = None
        self.admin: Optional[Dict[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def login(self, token: str, user: Dict[str, Any]) -> None:
        self.token = token
        self.admin = user
        self.storage[TOKEN_KEY] = token
        self.storage[USER_KEY] = json.dumps(user)

    def restore(self) -> bool:
        """Load a stored session. A corrupt record wipes both keys."""
        token = self.storage.get(TOKEN_KEY)
        raw_user = self.storage.get(USER_KEY)
        if not token or not raw_user:
            return False
        try:
            user = json.loads(raw_user)
        except (TypeError, ValueError) as e:
            logger.error("Error loading admin session: %s", e)
            self._clear_storage()
            return False
        self.token = token
        self.admin = user
        return True

    def logout(self) -> None:
        self.token = None
        self.admin = None
        self._clear_storage()

    def auth_headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {'Authorization': f"Bearer {self.token}"}

    def _clear_storage(self) -> None:
        self.storage.pop(TOKEN_KEY, None)
        self.storage.pop(USER_KEY, None)
