"""
Backup CLI tool for Ortomat.

Offline counterpart of the admin endpoints, for operators with direct
access to the database file.

Usage:
    ortomat-backup export --data-dir <path> [--output FILE]
    ortomat-backup restore --data-dir <path> --input FILE --yes
    ortomat-backup seed --data-dir <path>
    ortomat-backup issue-token --subject <account id> [--role ADMIN]

Invariants:
    - Restore refuses to run without --yes
    - The snapshot file is validated before the database is touched
    - Exit code is 0 on success, 1 on failure
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from ..auth.tokens import create_access_token
from ..backup import BackupExporter, BackupRestorer, backup_filename
from ..config import AuthConfig, BackupConfig
from ..errors import OrtomatError
from ..store import OrtomatStore
from .seed import seed_demo_data

logger = logging.getLogger(__name__)


def _open_store(args: argparse.Namespace) -> OrtomatStore:
    return OrtomatStore(args.data_dir, db_filename=args.db_filename)


async def run_export(args: argparse.Namespace, backup_config: BackupConfig) -> Path:
    store = _open_store(args)
    await store.initialize()

    now = datetime.now(timezone.utc)
    snapshot = await BackupExporter(store, log_limit=backup_config.log_limit).export(now=now)

    output = Path(args.output or backup_filename(now, backup_config.filename_prefix))
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(snapshot.to_document(), ensure_ascii=False), encoding="utf-8")
    return output


async def run_restore(args: argparse.Namespace, backup_config: BackupConfig):
    document = json.loads(Path(args.input).read_text(encoding="utf-8"))

    store = _open_store(args)
    await store.initialize()

    restorer = BackupRestorer(
        store,
        default_password=backup_config.default_password,
        bcrypt_rounds=backup_config.bcrypt_rounds,
    )
    return await restorer.restore(document)


async def run_seed(args: argparse.Namespace, backup_config: BackupConfig) -> dict[str, int]:
    store = _open_store(args)
    await store.initialize()
    return await seed_demo_data(store, bcrypt_rounds=backup_config.bcrypt_rounds)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ortomat-backup",
        description="Export and restore the Ortomat database",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_store_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--data-dir", required=True, help="Directory holding the database")
        p.add_argument("--db-filename", default="ortomat.db", help="Database file name")

    export = sub.add_parser("export", help="Write a snapshot of the database to a file")
    add_store_args(export)
    export.add_argument("--output", help="Output file (default: timestamped name)")

    restore = sub.add_parser("restore", help="Replace the database with a snapshot")
    add_store_args(restore)
    restore.add_argument("--input", required=True, help="Snapshot file to restore")
    restore.add_argument(
        "--yes", action="store_true", help="Confirm that all current data will be replaced"
    )

    seed = sub.add_parser("seed", help="Fill an empty database with demo data")
    add_store_args(seed)

    token = sub.add_parser("issue-token", help="Print a signed bearer token")
    token.add_argument("--subject", required=True, help="Account id for the sub claim")
    token.add_argument("--role", default="ADMIN", help="Role claim")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the backup tool."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    backup_config = BackupConfig.from_env()

    try:
        if args.command == "export":
            output = asyncio.run(run_export(args, backup_config))
            print(f"Backup written to {output}")

        elif args.command == "restore":
            if not args.yes:
                print("Restore replaces ALL data. Re-run with --yes to confirm.")
                return 1
            result = asyncio.run(run_restore(args, backup_config))
            print("Restore completed successfully")
            for kind, count in result.restored.items():
                print(f"  {kind}: {count}")
            print(f"  Accounts reset to temporary password: {result.accounts_reset}")
            print(f"  Duration: {result.duration_ms}ms")

        elif args.command == "seed":
            counts = asyncio.run(run_seed(args, backup_config))
            print("Seeded demo data")
            for kind, count in counts.items():
                print(f"  {kind}: {count}")

        elif args.command == "issue-token":
            print(create_access_token(AuthConfig.from_env(), args.subject, args.role.upper()))

    except (OrtomatError, OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        print(f"{args.command} failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
