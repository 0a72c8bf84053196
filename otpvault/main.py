"""
Command-line entry point for OTPVault.
"""

import argparse
import asyncio
import getpass
import logging
import sys
import time
from typing import List, Optional

from . import config
from . import engine
from . import totp
from . import vault_manager
from .backends import BackendKind, VaultBackend, create_backend, unlock_backend
from .entries import EntryDraft
from .errors import AuthenticationFailure, NotFound, OtpVaultError
from .totp import Algorithm
from .worker import init_worker_pool, shutdown_worker_pool


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=config.APP_ID, description=f"{config.APP_NAME} v{config.APP_VERSION}")
    parser.add_argument("--data-dir", help="Directory holding the vault and settings")
    parser.add_argument("--backend", choices=config.AVAILABLE_BACKENDS,
                        help="Storage backend (defaults to the one in settings)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init", help="Create a new, empty store")
    sub.add_parser("codes", help="Print the current code of every entry")

    add = sub.add_parser("add", help="Add an entry")
    add.add_argument("name")
    add.add_argument("secret")
    add.add_argument("--algorithm", default=config.DEFAULT_ALGORITHM,
                     choices=[a.value for a in Algorithm])
    add.add_argument("--digits", type=int, default=config.DEFAULT_DIGITS)
    add.add_argument("--period", type=int, default=config.DEFAULT_STEP)

    remove = sub.add_parser("remove", help="Delete an entry by id")
    remove.add_argument("entry_id")

    imp = sub.add_parser("import", help="Import otpauth:// URIs, one per line")
    imp.add_argument("file")

    exp = sub.add_parser("export", help="Export every entry as otpauth:// URIs")
    exp.add_argument("file")
    return parser


def _prompt_new_password() -> str:
    password = getpass.getpass("New master password: ")
    if not password:
        raise SystemExit("Password must not be empty")
    if password != getpass.getpass("Repeat master password: "):
        raise SystemExit("Passwords do not match")
    return password


async def _print_codes(backend) -> None:
    now = int(time.time())
    if isinstance(backend, VaultBackend):
        entries = list((await engine.update_all_totp(backend.vault, unix_time=now)).values())
        entries.sort(key=lambda e: e.name.lower())
    else:
        entries = await backend.list_entries()
        for entry in entries:
            entry.generate_totp(now)

    if not entries:
        print("No entries.")
        return
    for entry in entries:
        remaining = totp.seconds_until_refresh(entry.totp_config.step, now)
        print(f"{entry.totp:>10}  {remaining:>3}s  {entry.name}  [{entry.id}]")


async def _run(args: argparse.Namespace) -> int:
    settings = vault_manager.load_settings(args.data_dir)
    kind = BackendKind(args.backend or settings.backend)
    path = vault_manager.get_default_path(kind.value, args.data_dir)

    if args.command == "init":
        if vault_manager.check_vault(kind.value, args.data_dir):
            print(f"A store already exists at {path}", file=sys.stderr)
            return 1
        await create_backend(kind, path, _prompt_new_password())
        print(f"Created {kind.value} store at {path}")
        return 0

    backend = await unlock_backend(kind, path, getpass.getpass("Master password: "))

    if args.command == "codes":
        await _print_codes(backend)
    elif args.command == "add":
        draft = EntryDraft(
            name=args.name,
            secret=args.secret,
            algorithm=Algorithm(args.algorithm),
            digits=args.digits,
            step=args.period,
        )
        entry = await backend.add_entry(draft.to_entry())
        print(f"Added {entry.name} [{entry.id}]")
    elif args.command == "remove":
        await backend.delete_entry(args.entry_id)
        print(f"Deleted {args.entry_id}")
    elif args.command == "import":
        result = await backend.import_content(args.file)
        print(f"Imported {len(result.entries)} entries, skipped {len(result.skipped)} lines")
    elif args.command == "export":
        count = await backend.export_content(args.file)
        print(f"Exported {count} entries to {args.file}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')

    init_worker_pool()
    try:
        return asyncio.run(_run(args))
    except NotFound as e:
        print(f"Not found: {e}", file=sys.stderr)
        return 1
    except AuthenticationFailure as e:
        print(f"Unlock failed: {e}", file=sys.stderr)
        return 2
    except OtpVaultError as e:
        print(f"Error ({e.category}): {e}", file=sys.stderr)
        return 1
    finally:
        shutdown_worker_pool()


if __name__ == "__main__":
    sys.exit(main())
