from __future__ import annotations

import argparse
import base64
import json
import logging
import sys
from pathlib import Path
from typing import List

from sodium_item import __version__
from sodium_item.config import SodiumConfig
from sodium_item.errors import SodiumItemError, StateError
from sodium_item.keys import KeyPolicy
from sodium_item.provider import SodiumProvider
from sodium_item.schema import redact


def _print_json(obj) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def _content_b64(args) -> str:
    """Content as base64: --content as given, or --text encoded as UTF-8."""
    if args.text is not None:
        return base64.b64encode(args.text.encode("utf-8")).decode("ascii")
    return args.content


def _item_config(args) -> dict:
    return {"public_key_base64": args.public_key, "content_base64": _content_b64(args)}


def cmd_encrypt(provider: SodiumProvider, args) -> None:
    record = provider.new_data_source().read(_item_config(args))
    _print_json(record)


def cmd_apply(provider: SodiumProvider, args) -> None:
    resource = provider.new_resource()
    record, changed = resource.apply(args.name, _item_config(args))
    _print_json({"name": args.name, "changed": changed, "item": redact(record)})


def cmd_show(provider: SodiumProvider, args) -> bool:
    record = provider.new_resource().read(args.name)
    if record is None:
        print(f"Error: no item named {args.name!r}", file=sys.stderr)
        return False
    _print_json(record if args.show_sensitive else redact(record))
    return True


def cmd_destroy(provider: SodiumProvider, args) -> None:
    removed = provider.new_resource().delete(args.name)
    _print_json({"name": args.name, "removed": removed})


def cmd_import(provider: SodiumProvider, args) -> None:
    try:
        record = json.loads(Path(args.record).read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StateError(f"Record file {args.record} is not valid JSON: {e}") from e
    saved = provider.new_resource().import_state(args.name, args.id, record)
    _print_json({"name": args.name, "item": redact(saved)})


def cmd_list(provider: SodiumProvider, args) -> None:
    for name in provider.new_resource().names():
        print(name)


def _add_content_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--public-key", required=True, help="Recipient public key, base64")
    group = ap.add_mutually_exclusive_group(required=True)
    group.add_argument("--content", help="Content to encrypt, base64")
    group.add_argument("--text", help="Content to encrypt, as plain UTF-8 text")


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="sodium-item",
        description="Seal content to a public key and keep the result stable across runs",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("--state-dir", help="Item state directory (env SODIUM_ITEM_STATE_DIR)")
    ap.add_argument(
        "--key-policy",
        choices=[p.value for p in KeyPolicy],
        help="What to do with public keys that are not 32 bytes (env SODIUM_ITEM_KEY_POLICY)",
    )
    ap.add_argument("--log-level", help="Logging level (env SODIUM_ITEM_LOG_LEVEL)")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_encrypt = sub.add_parser("encrypt", help="Seal once and print the result, no state kept")
    _add_content_args(ap_encrypt)

    ap_apply = sub.add_parser("apply", help="Create or update a named item")
    ap_apply.add_argument("name", help="Item name")
    _add_content_args(ap_apply)

    ap_show = sub.add_parser("show", help="Show a stored item")
    ap_show.add_argument("name", help="Item name")
    ap_show.add_argument("--show-sensitive", action="store_true", help="Do not mask sensitive fields")

    ap_destroy = sub.add_parser("destroy", help="Forget a stored item")
    ap_destroy.add_argument("name", help="Item name")

    ap_import = sub.add_parser("import", help="Adopt an existing item record by id")
    ap_import.add_argument("name", help="Item name")
    ap_import.add_argument("id", help="Expected item id")
    ap_import.add_argument("--record", required=True, help="JSON file holding the item record")

    sub.add_parser("list", help="List stored items")

    args = ap.parse_args(argv)

    try:
        config = SodiumConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    if args.state_dir:
        config.state_dir = Path(args.state_dir)
    if args.key_policy:
        config.key_policy = KeyPolicy(args.key_policy)
    if args.log_level:
        config.log_level = args.log_level.upper()

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    provider = SodiumProvider(__version__, config)
    try:
        if args.cmd == "encrypt":
            cmd_encrypt(provider, args)
        elif args.cmd == "apply":
            cmd_apply(provider, args)
        elif args.cmd == "show":
            if not cmd_show(provider, args):
                sys.exit(1)
        elif args.cmd == "destroy":
            cmd_destroy(provider, args)
        elif args.cmd == "import":
            cmd_import(provider, args)
        elif args.cmd == "list":
            cmd_list(provider, args)
        else:
            raise RuntimeError("Unknown command")
    except SodiumItemError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (ValueError, KeyError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
