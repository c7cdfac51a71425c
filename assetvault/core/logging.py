from __future__ import annotations

import logging
import sys

from assetvault.core.config import settings

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    resolved = str(level or settings.log_level or "INFO").strip().upper()
    root = logging.getLogger()
    root.setLevel(resolved)

    if not any(getattr(h, "_assetvault", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._assetvault = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    # httpx logs every request at INFO, which floods the output with B2 calls.
    logging.getLogger("httpx").setLevel(logging.WARNING)
