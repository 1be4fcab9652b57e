"""Configuration module — frozen dataclass loaded from YAML, env vars and CLI args."""

import logging
import os
import sys
from dataclasses import dataclass

import yaml

logger = logging.getLogger(__name__)

TRUNCATE_POLICIES = ("always_clear", "retain_on_failure")


@dataclass(frozen=True)
class Config:
    log_dir: str = "./logs"
    log_filename: str = "debug.log"
    server: str = "http://localhost:8000"
    upload_path: str = "/api/error-logs/add"
    size_threshold_kb: float = 500.0
    overflow_cap: int = 2000
    request_timeout: float = 30.0
    preferences_file: str = "./logs/preferences.json"
    truncate_policy: str = "always_clear"

    @property
    def log_path(self) -> str:
        return os.path.join(self.log_dir, self.log_filename)

    @property
    def upload_url(self) -> str:
        return self.server.rstrip("/") + self.upload_path


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded YAML config from %s", path)
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, ignoring it", path)
        return {}
    return data


_ENV_VARS = {
    "log_dir": "DEBUGLOG_DIR",
    "server": "DEBUGLOG_SERVER",
    "size_threshold_kb": "DEBUGLOG_THRESHOLD_KB",
    "overflow_cap": "DEBUGLOG_OVERFLOW_CAP",
    "request_timeout": "DEBUGLOG_TIMEOUT",
    "preferences_file": "DEBUGLOG_PREFERENCES",
    "truncate_policy": "DEBUGLOG_TRUNCATE_POLICY",
}

_CASTS = {
    "size_threshold_kb": float,
    "overflow_cap": int,
    "request_timeout": float,
}


def _coerce(key: str, value):
    cast = _CASTS.get(key)
    return cast(value) if cast else str(value)


def load_config(
    argv: list[str] | None = None,
    yaml_data: dict | None = None,
    overrides: dict | None = None,
) -> Config:
    """Build Config from defaults <- YAML <- env vars <- CLI args (highest priority).

    ``overrides`` maps field names to already-parsed values and is applied
    together with ``argv``, for callers that parse their own command line.
    """
    if argv is None:
        argv = sys.argv[1:]

    kwargs: dict = {}
    for key, value in (yaml_data or {}).items():
        if key not in Config.__dataclass_fields__:
            logger.warning("Ignoring unknown config key %r", key)
            continue
        kwargs[key] = _coerce(key, value)

    for key, env_name in _ENV_VARS.items():
        raw = os.environ.get(env_name)
        if raw is not None:
            kwargs[key] = _coerce(key, raw)

    # CLI arg overrides (simple --key=value or --key value parsing)
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg.startswith("--"):
            if "=" in arg:
                key, value = arg[2:].split("=", 1)
            elif i + 1 < len(argv) and not argv[i + 1].startswith("--"):
                key = arg[2:]
                value = argv[i + 1]
                i += 1
            else:
                key = arg[2:]
                value = "true"

            key = key.replace("-", "_")
            if key == "threshold_kb":
                key = "size_threshold_kb"
            if key in Config.__dataclass_fields__:
                kwargs[key] = _coerce(key, value)
        i += 1

    for key, value in (overrides or {}).items():
        if value is not None and key in Config.__dataclass_fields__:
            kwargs[key] = _coerce(key, value)

    # A preferences file follows the log directory unless set explicitly
    if "log_dir" in kwargs and "preferences_file" not in kwargs:
        kwargs["preferences_file"] = os.path.join(kwargs["log_dir"], "preferences.json")

    policy = kwargs.get("truncate_policy", Config.truncate_policy)
    if policy not in TRUNCATE_POLICIES:
        raise ValueError(
            f"truncate_policy must be one of {', '.join(TRUNCATE_POLICIES)}, got {policy!r}"
        )

    return Config(**kwargs)
