from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "RISK_REPORT_LOG_LEVEL"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for one CLI command.

    ``level`` wins over ``RISK_REPORT_LOG_LEVEL``, which wins over ``INFO``.
    """
    resolved = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("risk_report").setLevel(resolved)
