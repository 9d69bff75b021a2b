"""
ServiceWatch - Session Token Store

Keeps the bearer token on disk so a restarted process stays logged in.
This is the only state that outlives the process.
"""

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class SessionTokenStore:
    """
    File-backed holder for the dashboard bearer token.

    The token is read lazily and cached in memory; save() and clear()
    update both the memory copy and the file.
    """

    def __init__(self, token_file: Path):
        """
        Initialize the token store.

        Args:
            token_file: Path of the file holding the token
        """
        self.token_file = Path(token_file)
        self._token: Optional[str] = None
        self._loaded = False

    def load(self) -> Optional[str]:
        """Return the stored token, or None when logged out."""
        if not self._loaded:
            self._loaded = True
            if self.token_file.exists():
                token = self.token_file.read_text(encoding="utf-8").strip()
                self._token = token or None
        return self._token

    def save(self, token: str) -> None:
        """Persist a freshly issued token."""
        if not token:
            raise ValueError("Refusing to save an empty session token")
        self.token_file.parent.mkdir(parents=True, exist_ok=True)
        self.token_file.write_text(token, encoding="utf-8")
        self._token = token
        self._loaded = True
        logger.info("[OK] Session token saved")

    def clear(self) -> None:
        """Forget the token in memory and on disk."""
        self._token = None
        self._loaded = True
        if self.token_file.exists():
            self.token_file.unlink()
            logger.info("[INFO] Session token cleared")

    @property
    def has_token(self) -> bool:
        return self.load() is not None
