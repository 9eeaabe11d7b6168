from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

MAX_UPLOAD_MB_DEFAULT = 10
ALLOWED_EXTENSIONS = ("xls", "xlsx")
CORS_ORIGINS_DEFAULT = ("http://localhost:3000", "http://127.0.0.1:3000")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    max_upload_bytes: int = MAX_UPLOAD_MB_DEFAULT * 1024 * 1024
    allowed_extensions: Tuple[str, ...] = ALLOWED_EXTENSIONS
    cors_origins: Tuple[str, ...] = field(default_factory=lambda: CORS_ORIGINS_DEFAULT)
    log_level: str = "INFO"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read ``STUDIO_*`` overrides; malformed values fall back to the defaults."""
    env = os.environ if environ is None else environ

    max_mb = env.get("STUDIO_MAX_UPLOAD_MB", MAX_UPLOAD_MB_DEFAULT)
    try:
        max_mb = float(max_mb)
    except (TypeError, ValueError):
        max_mb = MAX_UPLOAD_MB_DEFAULT
    if max_mb <= 0:
        max_mb = MAX_UPLOAD_MB_DEFAULT

    origins = tuple(o.strip() for o in (env.get("STUDIO_CORS_ORIGINS") or "").split(",") if o.strip())

    log_level = (env.get("STUDIO_LOG_LEVEL") or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        log_level = "INFO"

    return Settings(
        max_upload_bytes=int(max_mb * 1024 * 1024),
        cors_origins=origins or CORS_ORIGINS_DEFAULT,
        log_level=log_level,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
