"""Application configuration read from the basic JSON config file."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = ("/go/json/basicConfig.json", "configs/basicConfig.json")

# JSON field names, in the order of the dataclass fields they fill.
_CREDENTIAL_FIELDS = ("secretKey", "baseUrl", "okAccessKey", "okAccessPassphrase")
_REDIS_FIELDS = ("url", "password", "index")


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or parsed."""


@dataclass
class RedisConfig:
    url: str = ""
    password: str = ""
    index: int = 0


@dataclass
class CredentialConfig:
    secret_key: str = ""
    base_url: str = ""
    ok_access_key: str = ""
    ok_access_passphrase: str = ""


@dataclass
class ConnectConfig:
    login_sub_url: str = ""
    ws_private_base_url: str = ""
    ws_public_base_url: str = ""
    rest_base_url: str = ""


@dataclass
class ThreadsConfig:
    max_len_ticker_stream: int = 0
    max_candles: int = 0
    async_channels: int = 0
    max_tickers: int = 0
    rest_period: int = 0
    wait_ws: int = 0


def _read_root(paths: Iterable[str | os.PathLike[str]] | None) -> Any:
    candidates = list(DEFAULT_CONFIG_PATHS if paths is None else paths)
    last_error: Exception | None = None
    for path in candidates:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            last_error = exc
            continue
        try:
            return json.loads(text)
        except ValueError as exc:
            raise ConfigError(f"invalid config file {path}: {exc}") from exc
    raise ConfigError(f"cannot read config file: {last_error}")


def _walk(node: Any, keys: Iterable[str]) -> Any:
    for key in keys:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def _text(node: Any, *keys: str) -> str:
    value = _walk(node, keys)
    return value if isinstance(value, str) else ""


def _integer(node: Any, *keys: str) -> int:
    value = _walk(node, keys)
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return 0


def _credentials(node: Any, name: str) -> CredentialConfig:
    values = [_text(node, name, json_field) for json_field in _CREDENTIAL_FIELDS]
    return CredentialConfig(*values)


def _redis(node: Any) -> RedisConfig:
    url_field, password_field, index_field = _REDIS_FIELDS
    redis_node = _walk(node, ["redis"])
    return RedisConfig(
        url=_text(redis_node, url_field),
        password=_text(redis_node, password_field),
        index=_integer(redis_node, index_field),
    )


@dataclass
class AppConfig:
    """The settings of one environment, selected by GO_ENV."""

    env: str = ""
    config: dict[str, Any] = field(default_factory=dict)
    candle_dimentions: list[str] = field(default_factory=list)
    redis_conf: RedisConfig = field(default_factory=RedisConfig)
    credential_read_only_conf: CredentialConfig = field(default_factory=CredentialConfig)
    credential_mutable_conf: CredentialConfig = field(default_factory=CredentialConfig)
    connect_conf: ConnectConfig = field(default_factory=ConnectConfig)

    @classmethod
    def load(
        cls,
        environ: Mapping[str, str] | None = None,
        paths: Iterable[str | os.PathLike[str]] | None = None,
    ) -> AppConfig:
        """Read the first readable config file and pick the GO_ENV section."""
        environ = os.environ if environ is None else environ
        env = environ.get("GO_ENV", "")
        dimensions = environ.get("TUNAS_CANDLESDIMENTIONS", "").split("|")
        root = _read_root(paths)
        section = _walk(root, [env])
        if not isinstance(section, Mapping):
            section = {}
        return cls(
            env=env,
            config=dict(section),
            candle_dimentions=dimensions,
            redis_conf=_redis(section),
            credential_read_only_conf=_credentials(section, "credentialReadOnly"),
            credential_mutable_conf=_credentials(section, "credentialMutable"),
            connect_conf=ConnectConfig(
                login_sub_url=_text(section, "connect", "loginSubUrl"),
                ws_private_base_url=_text(section, "connect", "wsPrivateBaseUrl"),
                ws_public_base_url=_text(section, "connect", "wsPublicBaseUrl"),
                rest_base_url=_text(section, "connect", "restBaseUrl"),
            ),
        )

    def section(self, *args: str) -> Any:
        """Value at the given key path in the environment section, or None."""
        return _walk(self.config, args)


def read_config_json(
    keys: Iterable[str],
    environ: Mapping[str, str] | None = None,
    paths: Iterable[str | os.PathLike[str]] | None = None,
) -> Any:
    """Read the config file and return the value at the key path from its root."""
    environ = os.environ if environ is None else environ
    logger.info("env: %s", environ.get("GO_ENV", ""))
    return _walk(_read_root(paths), keys)