"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Reads the optional YAML settings file and the process environment and
parses them into a frozen ``Settings``.  Precedence, lowest to highest:
dataclass defaults, YAML file, environment variables.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` with the offending key named; no
  silent fallback to a default for a value that was supplied.
* Unknown YAML keys are rejected.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Non-integer / negative numbers, unknown log level -> ``ValueError``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.engine import URL

from stock_config.schema import DEFAULT_DATABASE_URL, Settings

# Environment variable -> Settings field
ENV_KEYS: dict[str, str] = {
    "DATABASE_URL": "database_url",
    "ALERT_DAYS": "alert_days",
    "JWT_SECRET": "jwt_secret",
    "JWT_EXPIRES_IN_SECONDS": "jwt_expires_in_seconds",
    "AUTH_VALIDATE_URL": "auth_validate_url",
    "AUTH_VALIDATE_TIMEOUT": "auth_validate_timeout",
    "AUTH_USER": "auth_demo_user",
    "AUTH_PASS": "auth_demo_pass",
    "HOST": "host",
    "PORT": "port",
    "LOG_LEVEL": "log_level",
    "SQL_ECHO": "sql_echo",
    "SERVICE_NAME": "service_name",
}

CONFIG_FILE_ENV = "STOCK_CONFIG_FILE"

_INT_FIELDS = {"alert_days": 0, "jwt_expires_in_seconds": 1, "port": 1}
_FLOAT_FIELDS = {"auth_validate_timeout"}
_BOOL_FIELDS = {"sql_echo"}
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML settings file.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: settings file must contain a mapping")
    return data


def parse_int(key: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    try:
        parsed = int(str(value).strip())
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {value!r}") from None
    if parsed < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {parsed}")
    return parsed


def parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"{key} must be a boolean, got {value!r}")


def parse_log_level(value: Any) -> str:
    level = str(value).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"log_level must be a logging level name, got {value!r}")
    return level


def database_url_from_parts(env: Mapping[str, str]) -> str | None:
    """
    Build a PostgreSQL URL from PG* / DB_* variables.

    Returns None when no host is configured.
    """
    host = env.get("PGHOST") or env.get("DB_HOST")
    if not host:
        return None
    port = env.get("PGPORT") or env.get("DB_PORT")
    return URL.create(
        "postgresql+psycopg2",
        username=env.get("PGUSER") or env.get("DB_USER"),
        password=env.get("PGPASSWORD") or env.get("DB_PASSWORD"),
        host=host,
        port=parse_int("PGPORT", port, 1) if port else None,
        database=env.get("PGDATABASE") or env.get("DB_NAME"),
    ).render_as_string(hide_password=False)


def _coerce(key: str, value: Any) -> Any:
    if key in _INT_FIELDS:
        return parse_int(key, value, _INT_FIELDS[key])
    if key in _FLOAT_FIELDS:
        try:
            parsed = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"{key} must be a number, got {value!r}") from None
        if parsed <= 0:
            raise ValueError(f"{key} must be > 0, got {parsed}")
        return parsed
    if key in _BOOL_FIELDS:
        return parse_bool(key, value)
    if key == "log_level":
        return parse_log_level(value)
    if key == "auth_validate_url":
        text = str(value).strip() if value is not None else ""
        return text or None
    return str(value)


def load_settings(
    env: Mapping[str, str],
    config_file: Path | None = None,
) -> Settings:
    """
    Build Settings from an optional YAML file and an environment mapping.

    ``config_file`` defaults to the path in ``STOCK_CONFIG_FILE`` if set.
    """
    known = {f.name for f in fields(Settings)}
    values: dict[str, Any] = {}

    path = config_file or (Path(env[CONFIG_FILE_ENV]) if env.get(CONFIG_FILE_ENV) else None)
    if path is not None:
        for key, value in load_yaml_file(path).items():
            if key not in known:
                raise ValueError(f"{path}: unknown setting {key!r}")
            values[key] = value

    if "database_url" not in values:
        from_parts = database_url_from_parts(env)
        if from_parts:
            values["database_url"] = from_parts

    for env_key, field_name in ENV_KEYS.items():
        if env_key in env:
            values[field_name] = env[env_key]

    parsed = {key: _coerce(key, value) for key, value in values.items()}
    if not parsed.get("database_url", DEFAULT_DATABASE_URL):
        raise ValueError("database_url must not be empty")
    return Settings(**parsed)
