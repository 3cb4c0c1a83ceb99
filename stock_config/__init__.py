"""
stock_config: single public entrypoint for service settings.

Responsibility:
    ``get_settings()`` is the only way the HTTP layer and the CLI obtain
    configuration.  The kernel never imports this package; values it needs
    (alert horizon, database URL) are passed in explicitly.

Failure modes:
    - ``ValueError`` for malformed values.
    - ``FileNotFoundError`` when ``STOCK_CONFIG_FILE`` names a missing file.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from stock_config.loader import load_settings
from stock_config.schema import Settings


def get_settings(
    env: Mapping[str, str] | None = None,
    config_file: Path | None = None,
) -> Settings:
    """Load settings from ``env`` (default: ``os.environ``) and YAML."""
    return load_settings(os.environ if env is None else env, config_file)


__all__ = ["Settings", "get_settings", "load_settings"]
