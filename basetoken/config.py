"""
basetoken configuration loader.

Goals
-----
- Zero external deps (stdlib only; `tomllib` for TOML files).
- Layered config with clear precedence:
    1) Explicit overrides passed to `load_config()` (highest)
    2) Environment variables (BASETOKEN_*)
    3) Config file (TOML or JSON), from the `config_file` argument or BASETOKEN_CONFIG
    4) Built-in defaults (lowest)
- A frozen, validated dataclass.

Key env vars:
  - BASETOKEN_NAME            (str)    default: "Base Ecosystem Token"
  - BASETOKEN_SYMBOL          (str)    default: "BET"
  - BASETOKEN_DECIMALS        (int)    default: 18
  - BASETOKEN_INITIAL_SUPPLY  (amount) default: 1_000_000e18
  - BASETOKEN_MAX_SUPPLY      (amount) default: 1_000_000_000e18
  - BASETOKEN_OWNER           (addr)   default: deterministic devnet deployer
  - BASETOKEN_CHAIN_ID        (int)    default: 1337
  - BASETOKEN_ADDRESS         (addr)   default: derived from name/symbol/owner
  - BASETOKEN_EVENT_LOG       (path)   default: unset (in-memory events only)
  - BASETOKEN_LOG_LEVEL       (str)    default: INFO
  - BASETOKEN_LOG_FORMAT      (json|text) default: auto

Amounts accept plain integers ("1000", "1_000") or a decimal exponent
("1000e18") so whole-token values can be written without 18 zeros.

Files may hold the keys at top level or under a `[token]` table:

    [token]
    name = "Base Ecosystem Token"
    symbol = "BET"
    initial_supply = "1000000e18"
    owner = "0x..."
"""

from __future__ import annotations

import hashlib
import json
import os
import re
import tomllib
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError

# ------------------------------
# Defaults & helpers
# ------------------------------

DEVNET_CHAIN_ID = 1337

DEFAULT_NAME = "Base Ecosystem Token"
DEFAULT_SYMBOL = "BET"
DEFAULT_DECIMALS = 18
DEFAULT_INITIAL_SUPPLY = 1_000_000 * 10**18
DEFAULT_MAX_SUPPLY = 1_000_000_000 * 10**18

# Stable devnet deployer so `basetoken info` works without any setup.
DEFAULT_OWNER = "0x" + hashlib.sha3_256(b"basetoken:devnet:deployer").hexdigest()[:40]

_ENV_PREFIX = "BASETOKEN_"
_AMOUNT_RE = re.compile(r"^\s*([0-9][0-9_]*)\s*(?:[eE]\s*([0-9]+))?\s*$")


def parse_amount(value: Any, *, key: str = "amount") -> int:
    """
    Parse an integer amount from an int or a string like "1_000", "0x10", "1000e18".
    """
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer amount", key=key)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip()
        if s.lower().startswith("0x"):
            try:
                return int(s, 16)
            except ValueError:
                raise ConfigError(f"{key}: bad hex amount {value!r}", key=key) from None
        m = _AMOUNT_RE.match(s)
        if m:
            base = int(m.group(1).replace("_", ""))
            exp = int(m.group(2)) if m.group(2) else 0
            return base * 10**exp
    raise ConfigError(f"{key}: cannot parse amount {value!r}", key=key)


def _parse_int(value: Any, *, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer", key=key)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip(), 0)
    except ValueError:
        raise ConfigError(f"{key}: cannot parse integer {value!r}", key=key) from None


# ------------------------------
# Config model
# ------------------------------


@dataclass(frozen=True)
class TokenConfig:
    name: str = DEFAULT_NAME
    symbol: str = DEFAULT_SYMBOL
    decimals: int = DEFAULT_DECIMALS
    initial_supply: int = DEFAULT_INITIAL_SUPPLY
    max_supply: int = DEFAULT_MAX_SUPPLY
    owner: str = DEFAULT_OWNER
    chain_id: int = DEVNET_CHAIN_ID
    address: Optional[str] = None
    event_log: Optional[Path] = None
    log_level: str = "INFO"
    log_format: str = ""

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["initial_supply"] = str(self.initial_supply)
        d["max_supply"] = str(self.max_supply)
        d["event_log"] = str(self.event_log) if self.event_log else None
        return d


_FIELD_NAMES = tuple(f.name for f in fields(TokenConfig))


def _coerce(key: str, value: Any) -> Any:
    if key in ("initial_supply", "max_supply"):
        return parse_amount(value, key=key)
    if key in ("decimals", "chain_id"):
        return _parse_int(value, key=key)
    if key == "event_log":
        return Path(str(value)).expanduser() if value not in (None, "") else None
    if key in ("address",):
        return str(value) if value not in (None, "") else None
    return str(value)


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"config file not found: {path}", key="config_file")
    try:
        if path.suffix.lower() == ".json":
            raw = json.loads(path.read_text(encoding="utf-8"))
        else:
            with path.open("rb") as fh:
                raw = tomllib.load(fh)
    except (ValueError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"cannot parse config file {path}: {e}", key="config_file") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {path} must hold a table/object", key="config_file")
    section = raw.get("token", raw)
    if not isinstance(section, dict):
        raise ConfigError("[token] must be a table", key="token")
    unknown = sorted(set(section) - set(_FIELD_NAMES))
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}", key=unknown[0])
    return dict(section)


def _load_env() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name in _FIELD_NAMES:
        raw = os.getenv(_ENV_PREFIX + name.upper())
        if raw is not None and raw.strip() != "":
            out[name] = raw
    return out


def load_config(config_file: Optional[str | Path] = None, **overrides: Any) -> TokenConfig:
    """
    Build a TokenConfig from (overrides > env > file > defaults) and validate it.
    """
    merged: Dict[str, Any] = {}

    file_ref = config_file or os.getenv(_ENV_PREFIX + "CONFIG")
    if file_ref:
        merged.update(_load_file(Path(file_ref).expanduser()))
    merged.update(_load_env())
    for k, v in overrides.items():
        if k not in _FIELD_NAMES:
            raise ConfigError(f"unknown config override: {k}", key=k)
        if v is not None:
            merged[k] = v

    cfg = TokenConfig(**{k: _coerce(k, v) for k, v in merged.items()})
    _validate_config(cfg)
    return cfg


def _validate_config(cfg: TokenConfig) -> None:
    if not (0 <= cfg.decimals <= 36):
        raise ConfigError("decimals must be within [0, 36]", key="decimals")
    if cfg.max_supply <= 0 or cfg.max_supply > 2**256 - 1:
        raise ConfigError("max_supply must be within [1, 2**256-1]", key="max_supply")
    if cfg.initial_supply < 0:
        raise ConfigError("initial_supply must be non-negative", key="initial_supply")
    if cfg.chain_id < 0 or cfg.chain_id > 2**64 - 1:
        raise ConfigError("chain_id must fit in u64", key="chain_id")
    if cfg.log_format.strip().lower() not in ("", "json", "text"):
        raise ConfigError("log_format must be 'json' or 'text'", key="log_format")


__all__ = [
    "TokenConfig",
    "load_config",
    "parse_amount",
    "DEFAULT_NAME",
    "DEFAULT_SYMBOL",
    "DEFAULT_DECIMALS",
    "DEFAULT_INITIAL_SUPPLY",
    "DEFAULT_MAX_SUPPLY",
    "DEFAULT_OWNER",
    "DEVNET_CHAIN_ID",
]
