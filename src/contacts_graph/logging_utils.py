from __future__ import annotations

import logging
import os
from typing import Optional

from .config_loader import PipelineConfig

LOG_LEVEL_ENV = "CONTACTS_GRAPH_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _level_value(level_name: str) -> int:
    normalized = level_name.strip().upper()
    if normalized.isdigit():
        return int(normalized)
    level = logging.getLevelName(normalized)
    return level if isinstance(level, int) else logging.WARNING


def resolve_log_level(config: PipelineConfig, level_override: Optional[str] = None) -> int:
    """
    Pick the effective level, first match wins:

    1. ``CONTACTS_GRAPH_LOG_LEVEL`` environment variable
    2. ``level_override`` (the ``--log-level`` flag)
    3. ``logging.level`` from the YAML config
    4. ``WARNING``

    Unknown level names fall back to ``WARNING``.
    """
    for candidate in (os.getenv(LOG_LEVEL_ENV), level_override, config.logging.level):
        if candidate and candidate.strip():
            return _level_value(candidate)
    return logging.WARNING


def configure_logging(config: PipelineConfig, level_override: Optional[str] = None) -> int:
    level_value = resolve_log_level(config, level_override)
    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level_value)
    else:
        logging.basicConfig(level=level_value, format=LOG_FORMAT)
    # openpyxl and pandas report spreadsheet quirks through warnings.warn.
    logging.captureWarnings(True)
    return level_value
