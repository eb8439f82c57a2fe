from __future__ import annotations

import argparse
import json
import logging

import requests

from gacha_node.config import AdminKeyStore, RuntimeSettings
from gacha_node.errors import GachaError
from gacha_node.infrastructure.http.sync import SyncAdapter
from gacha_node.services.gacha import Gacha
from gacha_node.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gacha-node", description="Gacha machine configuration CLI")
    subparsers = parser.add_subparsers(dest="command")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch a gacha and print one of its views")
    fetch_parser.add_argument("--admin", action="store_true", help="Also load admin-only sub-resources (needs GACHA_ADMIN_KEY)")
    fetch_parser.add_argument("--view", choices=("notecard", "live"), default="notecard", help="Which view to print (default: notecard)")

    validate_parser = subparsers.add_parser("validate", help="Fetch a gacha and report payout ledger problems")
    validate_parser.add_argument("--admin", action="store_true", help="Also load admin-only sub-resources (needs GACHA_ADMIN_KEY)")

    return parser


def build_gacha(settings: RuntimeSettings, session: requests.Session | None = None) -> Gacha:
    admin_keys = AdminKeyStore.from_settings(settings)
    adapter = SyncAdapter(settings, admin_keys, session=session)
    return Gacha(sync_adapter=adapter, admin_keys=admin_keys)


def main(argv: list[str] | None = None, *, session: requests.Session | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in ("fetch", "validate"):
        parser.print_help()
        return 1

    settings = RuntimeSettings.from_env()
    setup_logging(settings.log_level)

    gacha = build_gacha(settings, session=session)
    try:
        gacha.fetch({"load_admin": args.admin})
    except GachaError as exc:
        logger.error("could not fetch gacha: %s", exc)
        return 1

    if args.command == "fetch":
        view = gacha.to_json() if args.view == "live" else gacha.to_notecard_json()
        print(json.dumps(view, indent=2, sort_keys=True))
        return 0

    errors = gacha.validate()
    for error in errors:
        print(error)
    return 0 if not errors else 2


def entrypoint() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    entrypoint()
