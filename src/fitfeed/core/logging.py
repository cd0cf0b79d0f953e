"""
Logging configuration.

We use a YAML logging config (`src/fitfeed/config/logging.yaml`) and then apply
runtime overrides from settings (e.g., `FITFEED_LOG_LEVEL`).
"""

from __future__ import annotations

import logging.config

from fitfeed.config.settings import get_logging_config, get_settings


def configure_logging() -> None:
    """Configure the Python logging system based on packaged YAML config + settings."""
    settings = get_settings()
    # Copy: dictConfig consumers must not mutate the cached payload.
    config = dict(get_logging_config())
    config["root"] = dict(config.get("root", {}))
    config["handlers"] = {k: dict(v) for k, v in config.get("handlers", {}).items()}

    level = settings.app.log_level.upper()
    config["root"]["level"] = level
    for handler in config["handlers"].values():
        if "level" in handler:
            handler["level"] = level

    logging.config.dictConfig(config)
