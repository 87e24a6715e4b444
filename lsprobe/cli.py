"""
cli.py: Command-line interface for lsprobe.

Usage:
    lsprobe [OPTIONS]

Options:
    --ports-only        Parse the log for ports; skip the memory scan.
    --api-key KEY       Also call GetUserStatus with the discovered values.
    --json              Emit the result as JSON.
    --show-token        Print the CSRF token unmasked.
    --verbose           Debug logging.

Exit codes:
    0  discovery (and the optional call) succeeded
    1  discovery or the call failed
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Optional

from lsprobe.config import get_config
from lsprobe.discovery.orchestrator import LanguageServerDiscovery
from lsprobe.errors import DiscoveryError, LanguageServerRequestError
from lsprobe.rpc.client import LanguageServerClient
from lsprobe.utils.logging import get_logger, mask_secret, setup_logging

logger = get_logger("lsprobe.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lsprobe",
        description="Find the running Antigravity/Windsurf language server port and CSRF token.",
    )
    parser.add_argument("--ports-only", action="store_true", help="only parse the log for ports")
    parser.add_argument("--api-key", default=None, help="call GetUserStatus with this API key")
    parser.add_argument("--json", action="store_true", dest="as_json", help="emit JSON")
    parser.add_argument("--show-token", action="store_true", help="print the token unmasked")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser


def _emit(data: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(data, indent=2))
        return
    for key, value in data.items():
        if isinstance(value, dict):
            value = json.dumps(value)
        print(f"{key:>12}: {value}")


def _ports_only(discovery: LanguageServerDiscovery, as_json: bool) -> int:
    log_path = discovery.locate_log()
    ports = discovery.read_ports(log_path)
    _emit({"log_path": str(log_path), **ports.to_dict()}, as_json)
    return 0


def _full(discovery: LanguageServerDiscovery, args: argparse.Namespace) -> int:
    result = discovery.discover()
    token = result.token.value
    data = {
        "log_path": str(result.log_path),
        "port": result.port,
        "pid": result.pid,
        "csrf_token": token if args.show_token else mask_secret(token),
    }

    if args.api_key is not None:
        client = LanguageServerClient(discovery.config)
        status = asyncio.run(client.get_user_status(args.api_key, result.port, token))
        data["user_status"] = status.model_dump(by_alias=True)

    _emit(data, args.as_json)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.api_key is not None and not args.api_key.strip():
        print("error: --api-key must not be empty", file=sys.stderr)
        return 1
    config = get_config()
    setup_logging(
        debug=args.verbose or config.debug,
        log_dir=config.log_dir,
        log_max_bytes=config.log_max_bytes,
        log_backup_count=config.log_backup_count,
    )

    discovery = LanguageServerDiscovery(config)
    try:
        if args.ports_only:
            return _ports_only(discovery, args.as_json)
        return _full(discovery, args)
    except DiscoveryError as e:
        logger.error("discovery_failed", kind=e.kind, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1
    except LanguageServerRequestError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
