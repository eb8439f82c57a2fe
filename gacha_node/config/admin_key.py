"""Holder for the privileged-access (admin) token.

The token unlocks admin-only sub-resources and is embedded as a path
segment in every request URL while it is held. One store is created per
editing session and passed explicitly to the sync adapter and the
aggregate.
"""
from __future__ import annotations

import logging

from gacha_node.config.runtime import RuntimeSettings

logger = logging.getLogger(__name__)


def _normalize_key(value: str | None) -> str | None:
    key = str(value or "").strip()
    return key or None


class AdminKeyStore:
    def __init__(self, key: str | None = None) -> None:
        self._key = _normalize_key(key)

    @classmethod
    def from_settings(cls, settings: RuntimeSettings) -> "AdminKeyStore":
        return cls(settings.admin_key)

    def load(self) -> str | None:
        return self._key

    def save(self, key: str | None) -> None:
        self._key = _normalize_key(key)
        logger.info("admin key %s", "stored" if self._key else "cleared")

    def clear(self) -> None:
        self.save(None)
