"""Configuration for the Chaka mediator.

Reads from config/chaka.ini if present, environment variables override.
Loaded once at startup; a changed configuration means a new app.
"""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path

from chaka.directory import RESOURCES

_CONFIG_FILE = Path(__file__).resolve().parent.parent.parent / "config" / "chaka.ini"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class ChakaConfig:
    """Mediator configuration. Immutable once loaded."""

    directory_url: str = (
        "http://localhost:8984/CSD/csr/datim-small/careServicesRequest/"
        "urn:ihe:iti:csd:2014:stored-function:facility-search"
    )
    directory_resource: str = "facility"
    upstream_url: str = "http://localhost:9999"
    verify_only: bool = False
    mediator_urn: str = "urn:mediator:adx-orgunit-mapper"
    timeout: float = 30.0
    api_key: str = ""
    host: str = "127.0.0.1"
    port: int = 8533

    def __post_init__(self) -> None:
        if self.directory_resource not in RESOURCES:
            raise ValueError(
                f"directory_resource must be one of {', '.join(RESOURCES)}, "
                f"got {self.directory_resource!r}"
            )


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


_CONVERTERS = {
    "verify_only": _parse_bool,
    "timeout": float,
    "port": int,
}

_INI_KEYS = {
    "directory": [("url", "directory_url"), ("resource", "directory_resource")],
    "upstream": [("url", "upstream_url")],
    "mediator": [
        ("verify_only", "verify_only"),
        ("urn", "mediator_urn"),
        ("timeout", "timeout"),
    ],
    "gateway": [("api_key", "api_key"), ("host", "host"), ("port", "port")],
}

_ENV_KEYS = {
    "CHAKA_DIRECTORY_URL": "directory_url",
    "CHAKA_DIRECTORY_RESOURCE": "directory_resource",
    "CHAKA_UPSTREAM_URL": "upstream_url",
    "CHAKA_VERIFY_ONLY": "verify_only",
    "CHAKA_MEDIATOR_URN": "mediator_urn",
    "CHAKA_TIMEOUT": "timeout",
    "CHAKA_API_KEY": "api_key",
    "CHAKA_HOST": "host",
    "CHAKA_PORT": "port",
}


def load_config(config_path: Path | None = None) -> ChakaConfig:
    """Load config from INI file, then override with environment variables."""
    path = config_path or _CONFIG_FILE
    raw: dict[str, str] = {}

    if path.exists():
        parser = configparser.ConfigParser()
        parser.read(path)
        for section, keys in _INI_KEYS.items():
            if not parser.has_section(section):
                continue
            for ini_key, config_key in keys:
                val = parser.get(section, ini_key, fallback=None)
                if val is not None:
                    raw[config_key] = val

    for env_key, config_key in _ENV_KEYS.items():
        val = os.getenv(env_key)
        if val is not None:
            raw[config_key] = val

    kwargs = {
        key: _CONVERTERS[key](val) if key in _CONVERTERS else val
        for key, val in raw.items()
    }
    return ChakaConfig(**kwargs)
