from __future__ import annotations
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union
import os

import yaml

from shared.log import get_logger
from shared.utils import validate_participant_name, validate_port

logger = get_logger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 4466
DEFAULT_SERVERNAME = "server"

# Environment variable -> config field
_ENV_VARS: Dict[str, str] = {
    "CLACK_HOST": "host",
    "CLACK_PORT": "port",
    "CLACK_SERVER_NAME": "server_name",
    "CLACK_SHOW_TRAFFIC": "show_traffic",
    "CLACK_LOG_LEVEL": "log_level",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ClackConfig:
    """
    Settings the listener needs before the exchange engine starts.

    The port must lie in the registered range [1024, 49151] and the
    server name is the sender of every server-built message.
    """
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    server_name: str = DEFAULT_SERVERNAME
    show_traffic: bool = True
    log_level: Optional[str] = None

    def __post_init__(self) -> None:
        validate_port(self.port)
        validate_participant_name(self.server_name)
        if not self.host:
            raise ValueError("host must be a non-empty string")

    @property
    def server_url(self) -> str:
        return f"ws://{self.host}:{self.port}"


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw YAML/environment value to the field's type."""
    if value is None:
        return None
    if name == "port":
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            return int(str(value).strip())
        except ValueError:
            raise ValueError(f"Port {value!r} is not an integer") from None
    if name == "show_traffic":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"show_traffic must be a boolean, got {value!r}")
    return str(value)


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load a config mapping, either flat or nested under a top-level 'clack' key."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    if isinstance(data.get("clack"), dict):
        data = data["clack"]

    known = {f.name for f in fields(ClackConfig)}
    unknown = set(data) - known
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", path, sorted(unknown))
    return {k: v for k, v in data.items() if k in known}


def load_config(path: Optional[Union[str, Path]] = None, **overrides: Any) -> ClackConfig:
    """
    Build a ClackConfig from, in increasing priority: defaults, the YAML
    file at `path`, CLACK_* environment variables, and non-None overrides.

    Raises ValueError for an out-of-range port or an empty server name,
    and FileNotFoundError if an explicit path does not exist.
    """
    values: Dict[str, Any] = {}

    if path is not None:
        values.update(_load_yaml(Path(path)))

    for env_name, field_name in _ENV_VARS.items():
        raw = os.getenv(env_name)
        if raw is not None and raw != "":
            values[field_name] = raw

    values.update({k: v for k, v in overrides.items() if v is not None})

    coerced = {k: _coerce(k, v) for k, v in values.items()}
    config = replace(ClackConfig(), **coerced)
    logger.debug("Loaded config: %s", config)
    return config
