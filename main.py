"""
Catalog Feed Importer: command-line entry point.

Usage:
    # Download a feed and show its categories and brands
    python main.py parse --url https://vendor.example/feed.xml

    # Choose what to import
    python main.py select --session <id> --categories 10,12 --brands 5

    # Run the import for a session (or all in one go with --url)
    python main.py import --session <id>
    python main.py import --url https://vendor.example/feed.xml --categories 10

    # Price/stock sync, once or every PRICE_SYNC_INTERVAL_HOURS
    python main.py price-sync --url https://vendor.example/light.xml --update-inventory
    python main.py price-sync --loop

    # Register a price feed for the scheduled sync
    python main.py add-config --url https://vendor.example/light.xml
"""

import argparse
import json
import logging
import sys
import time

from dotenv import load_dotenv
load_dotenv()

import structlog

from config import settings, check_connection
from exceptions import AppError
from models import ImportConfigCreate, SelectionFilters

# Configure structured logging
logging.basicConfig(
    format="%(message)s",
    stream=sys.stdout,
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
            else structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


def _csv(value: str) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def _filters(args) -> SelectionFilters:
    return SelectionFilters(
        categories=_csv(args.categories) or None,
        brands=_csv(args.brands) or None,
        product_ids=_csv(args.products) or None,
    )


def _print(model) -> None:
    print(json.dumps(model.model_dump(mode="json"), indent=2, ensure_ascii=False))


def _workflow():
    # Built lazily so commands that never touch the pipeline skip provider setup
    from services.import_workflow_service import ImportWorkflowService
    from services.image_service import ImageService
    from services.text_generation import get_text_provider
    from integrations.catalog import SupabaseBlobStore

    blob_store = SupabaseBlobStore() if settings.image_mode == "materialize" else None
    return ImportWorkflowService(
        provider=get_text_provider(),
        image_service=ImageService(blob_store),
    )


# ===================
# COMMANDS
# ===================

def cmd_parse(args) -> int:
    workflow = _workflow()
    session = workflow.create_session(args.url)
    session = workflow.download_and_parse(session.id)
    _print(session)
    return 0


def cmd_select(args) -> int:
    session = _workflow().select(args.session, _filters(args))
    _print(session)
    return 0


def cmd_import(args) -> int:
    workflow = _workflow()

    if args.url:
        result = workflow.import_url(args.url, _filters(args), args.shipping_profile, args.sales_channel)
    elif args.session:
        result = workflow.run_import(args.session, args.shipping_profile, args.sales_channel)
    else:
        print("ERROR: --session or --url is required.")
        return 1

    _print(result)
    return 0 if result.status == "completed" else 1


def _sync_once(args) -> bool:
    from services.price_sync_service import get_price_sync_service
    from services.session_service import get_session_service

    service = get_price_sync_service()

    if args.url:
        results = [service.sync(args.url, args.update_inventory)]
    else:
        results = service.run_scheduled(get_session_service().list_configs(enabled_only=True))

    for result in results:
        _print(result)
    return all(result.status != "failed" for result in results)


def cmd_price_sync(args) -> int:
    if not args.loop:
        return 0 if _sync_once(args) else 1

    interval = settings.price_sync_interval_hours * 3600
    logger.info("price_sync_loop_started", interval_hours=settings.price_sync_interval_hours)
    while True:
        try:
            _sync_once(args)
        except AppError as e:
            logger.error("price_sync_loop_iteration_failed", error=e.message)
        time.sleep(interval)


def cmd_add_config(args) -> int:
    from services.session_service import get_session_service

    config = get_session_service().create_config(ImportConfigCreate(
        price_xml_url=args.url,
        enabled=not args.disabled,
        update_inventory=args.update_inventory,
    ))
    _print(config)
    return 0


def cmd_sessions(args) -> int:
    from services.session_service import get_session_service

    for session in get_session_service().list_sessions(limit=args.limit):
        print(f"{session.id}  {session.status.value:<10}  {session.xml_url}")
    return 0


def cmd_health(args) -> int:
    status = check_connection()
    print(json.dumps(status, indent=2))
    return 0 if status["status"] == "healthy" else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Import vendor XML product feeds into the catalog."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    parse_cmd = commands.add_parser("parse", help="Download a feed and summarize it")
    parse_cmd.add_argument("--url", required=True, help="Product feed URL")
    parse_cmd.set_defaults(handler=cmd_parse)

    select_cmd = commands.add_parser("select", help="Store a selection on a session")
    select_cmd.add_argument("--session", required=True, help="Import session id")
    import_cmd = commands.add_parser("import", help="Run an import")
    import_cmd.add_argument("--session", default="", help="Import session id")
    import_cmd.add_argument("--url", default="", help="Feed URL (creates a new session)")
    import_cmd.add_argument("--shipping-profile", default=None, help="Shipping profile id")
    import_cmd.add_argument("--sales-channel", default=None, help="Sales channel id")

    for command in (select_cmd, import_cmd):
        command.add_argument("--categories", default="", help="Comma-separated category ids")
        command.add_argument("--brands", default="", help="Comma-separated brand (producer) ids")
        command.add_argument("--products", default="", help="Comma-separated product ids (overrides the rest)")

    select_cmd.set_defaults(handler=cmd_select)
    import_cmd.set_defaults(handler=cmd_import)

    sync_cmd = commands.add_parser("price-sync", help="Sync prices and stock")
    sync_cmd.add_argument("--url", default="", help="Price feed URL (default: all enabled configs)")
    sync_cmd.add_argument("--update-inventory", action="store_true", help="Also update stock levels")
    sync_cmd.add_argument("--loop", action="store_true", help="Repeat every PRICE_SYNC_INTERVAL_HOURS")
    sync_cmd.set_defaults(handler=cmd_price_sync)

    config_cmd = commands.add_parser("add-config", help="Register a price feed for scheduled sync")
    config_cmd.add_argument("--url", required=True, help="Price feed URL")
    config_cmd.add_argument("--update-inventory", action="store_true", help="Also update stock levels")
    config_cmd.add_argument("--disabled", action="store_true", help="Store the config disabled")
    config_cmd.set_defaults(handler=cmd_add_config)

    sessions_cmd = commands.add_parser("sessions", help="List recent import sessions")
    sessions_cmd.add_argument("--limit", type=int, default=20)
    sessions_cmd.set_defaults(handler=cmd_sessions)

    health_cmd = commands.add_parser("health", help="Check the Supabase connection")
    health_cmd.set_defaults(handler=cmd_health)

    return parser


def main():
    args = build_parser().parse_args()

    logger.info(
        "application_starting",
        command=args.command,
        environment=settings.environment,
        debug=settings.debug
    )

    try:
        exit_code = args.handler(args)
    except AppError as e:
        logger.error("command_failed", command=args.command, code=e.code, error=e.message)
        print(json.dumps(e.to_dict(), indent=2, ensure_ascii=False))
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
