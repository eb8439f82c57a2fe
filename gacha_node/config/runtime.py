from __future__ import annotations

from dataclasses import dataclass
import os


def _normalize_document_path(value: str) -> str:
    path = value.strip() or "/"
    if not path.startswith("/"):
        path = "/" + path
    if not path.endswith("/"):
        path = path + "/"
    return path


@dataclass(frozen=True)
class RuntimeSettings:
    base_url: str
    document_path: str
    admin_key: str
    request_timeout_seconds: float
    log_level: str

    @classmethod
    def from_env(cls) -> "RuntimeSettings":
        return cls(
            base_url=os.getenv("GACHA_BASE_URL", "http://localhost:8080").rstrip("/"),
            document_path=_normalize_document_path(os.getenv("GACHA_DOCUMENT_PATH", "/")),
            admin_key=os.getenv("GACHA_ADMIN_KEY", "").strip(),
            request_timeout_seconds=float(os.getenv("GACHA_REQUEST_TIMEOUT_SECONDS", "30")),
            log_level=os.getenv("GACHA_LOG_LEVEL", "INFO").upper(),
        )
