from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from xmarket.utils.validation import assert_address

ENV_PREFIX = "XMARKET_"


@dataclass(slots=True)
class ClientConfig:
    network_id: int
    order_lib_address: str
    market_token_address: str
    registry_address: Optional[str] = None
    log_level: str = "INFO"
    log_dir: str = "logs"


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _read_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _pick(key: str, payload: Mapping[str, Any], env: Mapping[str, str], default: Any) -> Any:
    env_value = env.get(ENV_PREFIX + key.upper())
    if env_value:
        return env_value
    value = payload.get(key)
    if value is None or value == "":
        return default
    return value


def load_config(
    *,
    network_id: Optional[int] = None,
    order_lib_address: Optional[str] = None,
    market_token_address: Optional[str] = None,
    registry_address: Optional[str] = None,
    log_level: str = "INFO",
    log_dir: str = "logs",
    config_path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    """Build a ``ClientConfig`` from keyword defaults, an optional file and ``XMARKET_*`` env vars.

    Precedence, highest first: environment, config file, keyword arguments.
    """
    payload: Dict[str, Any] = {}
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(config_path)
        if path.suffix in {".yaml", ".yml"}:
            payload = _read_yaml(path)
        elif path.suffix == ".json":
            payload = _read_json(path)
        else:
            raise ValueError(f"unsupported config extension: {path.suffix}")
    environ = os.environ if env is None else env

    raw_network = _pick("network_id", payload, environ, network_id)
    if raw_network is None:
        raise ValueError("network_id is required")
    order_lib = _pick("order_lib_address", payload, environ, order_lib_address)
    market_token = _pick("market_token_address", payload, environ, market_token_address)
    if not order_lib:
        raise ValueError("order_lib_address is required")
    if not market_token:
        raise ValueError("market_token_address is required")

    registry = _pick("registry_address", payload, environ, registry_address)
    cfg = ClientConfig(
        network_id=int(raw_network),
        order_lib_address=assert_address("order_lib_address", order_lib),
        market_token_address=assert_address("market_token_address", market_token),
        registry_address=None if registry is None else assert_address("registry_address", registry),
        log_level=str(_pick("log_level", payload, environ, log_level)).upper(),
        log_dir=str(_pick("log_dir", payload, environ, log_dir)),
    )
    return cfg


__all__ = ["ClientConfig", "load_config", "ENV_PREFIX"]
