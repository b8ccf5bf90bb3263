"""Application configuration loaded from a YAML file and the environment."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

DEFAULT_CONFIG_PATH = Path("config") / "local.yaml"

_NANOS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_PART = r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_DURATION = re.compile(f"(?:{_PART})+")
_MAX_NANOS = 2**63 - 1


class ConfigError(Exception):
    """Raised when the configuration cannot be read or is malformed."""


@dataclass
class TransportTLS:
    """TLS settings for the search engine transport."""

    insecure: bool = False


@dataclass
class Transport:
    """Transport settings for the search engine; timeouts are in seconds."""

    tls: TransportTLS = field(default_factory=TransportTLS)
    tls_timeout: float = 0.0
    idle_timeout: float = 0.0


@dataclass
class ElasticSearchSettings:
    """Connection settings for the search engine."""

    address: str = ""
    username: str = ""
    password: str = ""
    transport: Transport = field(default_factory=Transport)


@dataclass
class Config:
    """Application configuration; timeouts are in seconds."""

    address: str = ""
    read_timeout: float = 0.0
    write_timeout: float = 0.0
    idle_timeout: float = 0.0
    service_name: str = ""
    elasticsearch: ElasticSearchSettings = field(default_factory=ElasticSearchSettings)


def parse_duration(text: str) -> float:
    """Parse a duration such as ``"1m30s"`` or ``"250ms"`` into seconds."""
    sign = -1 if text.startswith("-") else 1
    body = text[1:] if text[:1] in ("+", "-") else text
    if body == "0":
        return 0.0
    if not _DURATION.fullmatch(body):
        raise ValueError(f"invalid duration {text!r}")
    total = sum(
        (Fraction(number) * _NANOS_PER_UNIT[unit] for number, unit in re.findall(_PART, body)),
        Fraction(0),
    )
    nanos = int(total)
    if nanos > (_MAX_NANOS + 1 if sign < 0 else _MAX_NANOS):
        raise ValueError(f"invalid duration {text!r}")
    return sign * nanos / 1e9


def load_config(
    envs: Mapping[str, str], path: Union[str, Path] = DEFAULT_CONFIG_PATH
) -> Config:
    """Build the configuration for the environment named in ``envs``.

    "production" and "development" start from defaults; any other environment
    reads the YAML file at ``path``. Addresses and credentials come from ``envs``.
    """
    if envs.get("env", "") in ("production", "development"):
        config = Config()
    else:
        config = _read_file(Path(path))
    config.address = envs.get("address", "")
    config.elasticsearch.address = envs.get("es_address", "")
    config.elasticsearch.username = envs.get("es_username", "")
    config.elasticsearch.password = envs.get("es_password", "")
    return config


def _read_file(path: Path) -> Config:
    if path.suffix.lower() not in (".yaml", ".yml"):
        raise ConfigError(f"file format {path.suffix!r} is not supported")
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot load config file {path}: {exc}") from exc

    root = _mapping(data, "config")
    es = _mapping(root.get("elasticsearch"), "elasticsearch")
    transport = _mapping(es.get("transport"), "transport")
    tls = _mapping(transport.get("tls"), "tls")
    insecure = tls.get("tls_insecure", False)
    if insecure is not None and not isinstance(insecure, bool):
        raise ConfigError("tls_insecure: expected a boolean")

    return Config(
        read_timeout=_duration(root, "read_timeout"),
        write_timeout=_duration(root, "write_timeout"),
        idle_timeout=_duration(root, "idle_timeout"),
        service_name=_string(root.get("service_name")),
        elasticsearch=ElasticSearchSettings(
            transport=Transport(
                tls=TransportTLS(insecure=bool(insecure)),
                tls_timeout=_duration(transport, "tls_timeout"),
                idle_timeout=_duration(transport, "idle_timeout"),
            )
        ),
    )


def _mapping(value: Any, key: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{key}: expected a mapping")
    return value


def _duration(section: Mapping[str, Any], key: str) -> float:
    value = section.get(key)
    if value is None:
        return 0.0
    if isinstance(value, int) and not isinstance(value, bool):
        return value / 1e9
    if isinstance(value, str):
        try:
            return parse_duration(value)
        except ValueError as exc:
            raise ConfigError(f"{key}: {exc}") from exc
    raise ConfigError(f"{key}: expected a duration")


def _string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigError("service_name: expected a string")