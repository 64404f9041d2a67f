"""
basetoken.cli
=============

Small command-line front end for local experiments with a token.

Commands
--------
info
    Build a token from configuration and print `get_token_info()` as JSON.

run SCRIPT.json
    Build a token and apply a JSON list of calls in order:

        [
          {"op": "mint", "caller": "0xOWNER...", "args": {"to": "0xA...", "amount": "1000e18"}},
          {"op": "burn", "caller": "0xA...", "args": {"amount": "100e18"}},
          {"op": "balance_of", "args": {"account": "0xA..."}}
        ]

    One JSON line is printed per call: `{"status": "ok", ...}` or
    `{"status": "error", "error": {...}}`. The exit code is 1 when any call
    failed.

version
    Print version metadata.

Configuration comes from `--config`, BASETOKEN_* environment variables and
the flags below (see `basetoken.config`).

Examples
--------
python -m basetoken info --symbol TST --initial-supply 1000e18
python -m basetoken run calls.json --config token.toml
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from . import logging as tlog
from .config import TokenConfig, load_config, parse_amount
from .errors import ConfigError, TokenError, error_to_result
from .token import BaseToken, TokenInfo
from .version import version_metadata

log = logging.getLogger(__name__)

# Calls whose first positional parameter is the acting account.
CALLER_OPS = frozenset(
    (
        "mint",
        "burn",
        "burn_from",
        "transfer",
        "approve",
        "transfer_from",
        "increase_allowance",
        "decrease_allowance",
        "transfer_ownership",
        "renounce_ownership",
        "cancel_next_permit",
    )
)
# Relayed calls; the caller is passed as a keyword.
RELAYED_OPS = frozenset(("permit",))
VIEW_OPS = frozenset(
    (
        "name",
        "symbol",
        "decimals",
        "total_supply",
        "max_supply",
        "owner",
        "balance_of",
        "allowance",
        "nonces",
        "get_token_info",
    )
)

_AMOUNT_KEYS = frozenset(("amount", "value", "added", "subtracted", "deadline"))


def _dumps(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _coerce_args(args: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in args.items():
        out[k] = parse_amount(v, key=k) if k in _AMOUNT_KEYS else v
    return out


def _jsonable(value: Any) -> Any:
    if isinstance(value, TokenInfo):
        return value._asdict()
    if isinstance(value, bytes):
        return "0x" + value.hex()
    return value


def apply_call(token: BaseToken, call: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply one scripted call and return its JSON-ready result. Token errors
    are reported in the result; they never escape.
    """
    op = call.get("op")
    caller = call.get("caller")
    raw_args = call.get("args") or {}
    if not isinstance(raw_args, dict):
        return {"status": "error", "op": op, "error": {"code": "BAD_ARGS", "message": "args must be an object"}}
    if op not in CALLER_OPS and op not in RELAYED_OPS and op not in VIEW_OPS:
        return {"status": "error", "op": op, "error": {"code": "UNKNOWN_OP", "message": f"unknown op {op!r}"}}

    method = getattr(token, op)
    try:
        args = _coerce_args(raw_args)
        if op in VIEW_OPS:
            return {"status": "ok", "op": op, "result": _jsonable(method(**args))}
        if op in RELAYED_OPS:
            receipt = method(caller=caller, **args)
        else:
            receipt = method(caller, **args)
    except TokenError as e:
        out = error_to_result(e)
        out["op"] = op
        return out
    except TypeError as e:
        return {"status": "error", "op": op, "error": {"code": "BAD_ARGS", "message": str(e)}}
    return receipt.to_dict()


def _load_script(path: Path) -> List[Dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(f"cannot read script {path}: {e}", key="script") from e
    if not isinstance(data, list) or not all(isinstance(c, dict) for c in data):
        raise ConfigError("script must be a JSON list of call objects", key="script")
    return data


# ----------------------------------- CLI --------------------------------- #


def _parse_cli(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="basetoken",
        description="Supply-capped fungible token: inspect or script a local instance.",
    )
    p.add_argument("--config", type=Path, default=None, help="TOML/JSON config file")
    p.add_argument("--name", type=str, default=None, help="Token name")
    p.add_argument("--symbol", type=str, default=None, help="Token symbol")
    p.add_argument("--owner", type=str, default=None, help="Owner address (0x + 40 hex)")
    p.add_argument("--initial-supply", type=str, default=None, help='Initial supply, e.g. "1000000e18"')
    p.add_argument("--max-supply", type=str, default=None, help="Supply cap")
    p.add_argument("--event-log", type=Path, default=None, help="Append committed events to this JSONL file")
    p.add_argument("--log-level", type=str, default=None, help="Log level (default: INFO)")
    p.add_argument("--log-format", choices=("json", "text"), default=None, help="Log format")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("info", help="Print token info as JSON")
    run = sub.add_parser("run", help="Apply a JSON script of calls")
    run.add_argument("script", type=Path, help="Path to a JSON list of {op, caller, args}")
    run.add_argument("--fail-fast", action="store_true", help="Stop at the first failed call")
    sub.add_parser("version", help="Print version metadata")
    return p.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> TokenConfig:
    return load_config(
        args.config,
        name=args.name,
        symbol=args.symbol,
        owner=args.owner,
        initial_supply=args.initial_supply,
        max_supply=args.max_supply,
        event_log=args.event_log,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def _cmd_run(token: BaseToken, script: Path, fail_fast: bool) -> int:
    calls = _load_script(script)
    failed = 0
    for i, call in enumerate(calls):
        result = apply_call(token, call)
        print(_dumps(result))
        if result.get("status") != "ok":
            failed += 1
            log.debug("call %d (%s) failed", i, call.get("op"))
            if fail_fast:
                break
    if failed:
        log.warning("%d of %d calls failed", failed, len(calls))
        return 1
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_cli(argv)

    if args.command == "version":
        print(_dumps(version_metadata()))
        return 0

    try:
        cfg = _config_from_args(args)
    except ConfigError as e:
        print(f"[basetoken] ERROR: {e}", file=sys.stderr)
        return 2
    tlog.configure_from_config(cfg)

    try:
        with tlog.trace_scope():
            token = BaseToken.from_config(cfg)
            try:
                if args.command == "info":
                    print(_dumps(token.get_token_info()._asdict()))
                    return 0
                return _cmd_run(token, args.script, args.fail_fast)
            finally:
                token.close()
    except TokenError as e:
        print(f"[basetoken] ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
