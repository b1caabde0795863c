"""CLI main: argument parsing and command dispatch."""

import argparse
import getpass
import sys
from pathlib import Path

import yaml

from logistics_config import get_active_config
from logistics_kernel.db.engine import Store
from logistics_kernel.logging_config import get_logger
from logistics_services import LogisticsGateway, OperationResult
from scripts.cli.util import fmt_amount, print_result, setup_logging

logger = get_logger("cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logistics-cli",
        description="Inventory, order and accounting operations for the logistics store.",
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML overlay for the bundled defaults")
    parser.add_argument("--database-url", default=None, help="Override database.url")
    parser.add_argument("--log-file", type=Path, default=None, help="Write JSON logs here instead of stderr")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables and updated_at triggers (idempotent)")

    reconcile = sub.add_parser("reconcile", help="Recompute warehouse item counts from inventory")
    reconcile.add_argument("--warehouse", default=None, help="Only this warehouse id")

    summary = sub.add_parser("summary", help="Income / expense / profit summary")
    summary.add_argument("--period", choices=["daily", "weekly", "monthly", "all"], default="monthly")
    summary.add_argument("--brief", action="store_true", help="Print headline figures instead of JSON")

    inventory = sub.add_parser("inventory", help="List inventory rows")
    inventory.add_argument("--vendor", default=None)
    inventory.add_argument("--warehouse", default=None)
    inventory.add_argument("--product", default=None)

    stats = sub.add_parser("stats", help="Delivery performance statistics")
    stats.add_argument("scope", choices=["client", "vendor", "agent"])
    stats.add_argument("--id", dest="party_id", default=None, help="Vendor or agent id")

    sub.add_parser("remittance-metrics", help="Pending and completed vendor remittance figures")

    user = sub.add_parser("create-user", help="Create an operator account")
    user.add_argument("--email", required=True)
    user.add_argument("--full-name", default=None)
    user.add_argument("--password", default=None, help="Prompted for when omitted")

    return parser


def _print_brief_summary(result: OperationResult) -> int:
    if not result.success:
        return print_result(result)
    summary = result.data
    income = summary.income_breakdown
    pl = summary.profit_loss
    print(f"Period: {summary.period or 'all time'}")
    print(f"  VIP charged      {fmt_amount(income.vip.charged):>16}  received {fmt_amount(income.vip.received):>16}")
    print(f"  Regular charged  {fmt_amount(income.regular.charged):>16}  received {fmt_amount(income.regular.received):>16}")
    print(f"  Expenses         {fmt_amount(pl.total_expenses):>16}")
    print(f"  Profit           {fmt_amount(pl.profit):>16}")
    print(f"  Cash profit      {fmt_amount(pl.cash_profit):>16}")
    print(f"  Outstanding      {fmt_amount(pl.outstanding):>16}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        config = get_active_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2

    setup_logging(config.logging.level, args.log_file)
    database_url = args.database_url or config.database.url
    logger.info("cli_command_started", extra={"command": args.command})

    store = Store.from_url(
        database_url,
        echo=config.database.echo,
        busy_timeout_seconds=config.database.busy_timeout_seconds,
    )
    try:
        store.create_tables()
        if args.command == "init-db":
            print(f"Schema ready at {database_url}")
            return 0

        gateway = LogisticsGateway(store, config)

        if args.command == "reconcile":
            return print_result(gateway.reconcile_inventory(args.warehouse))
        if args.command == "summary":
            period = None if args.period == "all" else args.period
            result = gateway.accounting_summary(period)
            return _print_brief_summary(result) if args.brief else print_result(result)
        if args.command == "inventory":
            return print_result(
                gateway.list_inventory(args.vendor, args.warehouse, args.product)
            )
        if args.command == "stats":
            return print_result(gateway.performance_stats(args.scope, args.party_id))
        if args.command == "remittance-metrics":
            return print_result(gateway.remittance_metrics())
        if args.command == "create-user":
            password = args.password or getpass.getpass("Password: ")
            return print_result(gateway.create_user(args.email, password, args.full_name))
    finally:
        store.dispose()

    return 2


if __name__ == "__main__":
    sys.exit(main())
