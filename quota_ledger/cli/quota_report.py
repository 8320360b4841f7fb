"""CLI for bootstrapping the quota ledger and printing read-only reports."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from quota_ledger.core.config import settings
from quota_ledger.core.errors import QuotaLedgerError
from quota_ledger.core.logging import configure_logging
from quota_ledger.db.session import build_engine
from quota_ledger.services.storage_quota import StorageQuotaService


async def run_command(args: argparse.Namespace) -> object:
    """Execute one subcommand and return a JSON-serializable payload."""
    engine = build_engine(args.database_url)
    service = StorageQuotaService(engine)
    try:
        if args.command == "bootstrap":
            summary = await service.bootstrap(create_tables=True)
            return summary.model_dump(mode="json")
        if args.command == "summary":
            summary = await service.get_ledger_summary()
            return summary.model_dump(mode="json")
        if args.command == "user":
            storage = await service.get_user_storage(args.principal)
            if storage is None:
                return {
                    "principal_id": args.principal,
                    "exists": False,
                    "quota_limit": await service.get_user_quota(args.principal),
                    "used_storage": 0,
                }
            return storage.model_dump(mode="json")
        if args.command == "users":
            rows = await service.list_users(offset=args.offset, limit=args.limit)
            return [row.model_dump(mode="json") for row in rows]
        if args.command == "package":
            package = await service.get_quota_package(args.package_id)
            return package.model_dump(mode="json") if package is not None else None
        if args.command == "packages":
            packages = await service.list_quota_packages(active_only=args.active_only)
            return [package.model_dump(mode="json") for package in packages]
        msg = f"unknown command: {args.command}"
        raise ValueError(msg)
    finally:
        await engine.dispose()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m quota_ledger.cli.quota_report",
        description="Bootstrap the storage quota ledger and report its state.",
    )
    parser.add_argument("--database-url", default=settings.database_url)
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Print single-line JSON output.",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("bootstrap", help="Create tables and the ledger state row.")
    commands.add_parser("summary", help="Show global counters and pricing.")

    user = commands.add_parser("user", help="Show one principal's quota record.")
    user.add_argument("principal")

    users = commands.add_parser("users", help="List stored quota records.")
    users.add_argument("--offset", type=int, default=0)
    users.add_argument("--limit", type=int, default=100)

    package = commands.add_parser("package", help="Show one quota package.")
    package.add_argument("package_id", type=int)

    packages = commands.add_parser("packages", help="List quota packages.")
    packages.add_argument("--active-only", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        use_utc=settings.log_use_utc,
    )
    try:
        payload = asyncio.run(run_command(args))
    except QuotaLedgerError as exc:
        print(f"quota-ledger error ({exc.code}): {exc.detail}", file=sys.stderr)
        return 1

    if args.compact:
        print(json.dumps(payload, sort_keys=True))
    else:
        print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
