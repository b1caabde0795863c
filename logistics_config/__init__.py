"""
logistics_config -- single public entrypoint for runtime configuration.

``get_active_config()`` is the only way components obtain settings; no
other module reads YAML files or environment variables.  Every call emits a
``LOGISTICS_CONFIG_TRACE`` log entry carrying the configuration checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from logistics_config.loader import load_config
from logistics_config.schema import AppConfig

_logger = logging.getLogger("logistics_kernel.config")


def get_active_config(path: Path | str | None = None, environ=None) -> AppConfig:
    """
    Return the active configuration.

    Raises:
        FileNotFoundError: An explicit overlay file does not exist.
        ValueError: Unknown keys or invalid values.
    """
    config = load_config(path, environ)
    _logger.info(
        "LOGISTICS_CONFIG_TRACE",
        extra={
            "trace_type": "LOGISTICS_CONFIG_TRACE",
            "checksum": config.checksum,
            "database_url": config.database.url.split("?")[0],
            "enforce_capacity": config.inventory.enforce_capacity,
        },
    )
    return config


__all__ = ["AppConfig", "get_active_config", "load_config"]
