"""
Command-line entry point: ``stock-service`` / ``python -m stock_api``.

Subcommands:
    serve                 create tables if missing and run the HTTP server
    init-db               create tables and exit
    issue-token SUBJECT   print a locally signed bearer token
    alerts                print the low-stock / near-expiry report as JSON
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from stock_api.access_gate import LocalTokenGate
from stock_api.schemas import alert_payload
from stock_config import Settings, get_settings
from stock_kernel.db.engine import Database
from stock_kernel.domain.clock import SystemClock
from stock_kernel.logging_config import configure_logging, get_logger
from stock_kernel.selectors import AlertSelector

logger = get_logger("api.cli")


def _cmd_serve(settings: Settings, args: argparse.Namespace) -> int:
    import uvicorn

    from stock_api.app import create_app

    database = Database(settings.database_url, echo=settings.sql_echo)
    database.create_tables()
    app = create_app(settings, database=database)
    try:
        uvicorn.run(
            app,
            host=args.host or settings.host,
            port=args.port or settings.port,
            log_level=settings.log_level.lower(),
        )
    finally:
        database.dispose()
    return 0


def _cmd_init_db(settings: Settings, args: argparse.Namespace) -> int:
    database = Database(settings.database_url, echo=settings.sql_echo)
    try:
        database.create_tables()
    finally:
        database.dispose()
    print(f"Tables ready on {database.dialect_name}")
    return 0


def _cmd_issue_token(settings: Settings, args: argparse.Namespace) -> int:
    gate = LocalTokenGate(settings.jwt_secret, settings.jwt_expires_in_seconds)
    print(gate.issue_token(args.subject, role=args.role))
    return 0


def _cmd_alerts(settings: Settings, args: argparse.Namespace) -> int:
    horizon = settings.alert_days if args.days is None else args.days
    database = Database(settings.database_url, echo=settings.sql_echo)
    try:
        with database.session_scope() as session:
            alerts = AlertSelector(session).list_alerts(SystemClock().now(), horizon)
    finally:
        database.dispose()
    print(json.dumps([alert_payload(a) for a in alerts], indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stock-service",
        description="Perishable stock and application ledger service",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(handler=_cmd_serve)

    init_db = sub.add_parser("init-db", help="Create database tables")
    init_db.set_defaults(handler=_cmd_init_db)

    token = sub.add_parser("issue-token", help="Print a signed bearer token")
    token.add_argument("subject")
    token.add_argument("--role", default="admin")
    token.set_defaults(handler=_cmd_issue_token)

    alerts = sub.add_parser("alerts", help="Print the alert report as JSON")
    alerts.add_argument("--days", type=int, default=None)
    alerts.set_defaults(handler=_cmd_alerts)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except (ValueError, OSError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    configure_logging(level=logging.getLevelName(settings.log_level))
    logger.debug("cli_command", extra={"command": args.command})
    return args.handler(settings, args)


if __name__ == "__main__":
    sys.exit(main())
