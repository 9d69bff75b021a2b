"""
ServiceWatch - Main Entry Point

Command line access to the services store: log in, list services, or
preload every service, port and client detail into the cache.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone

from servicewatch.api.gateway import AsyncGatewayClient, GatewayError
from servicewatch.api.session import SessionTokenStore
from servicewatch.store.services_store import ServicesStore
from servicewatch.utils.config import Config
from servicewatch.utils.logging_config import setup_logging


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        description="ServiceWatch - Service Traffic Dashboard Store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Log in and keep the token for later runs
  python -m servicewatch.main --login SECRET

  # List monitored services
  python -m servicewatch.main --list

  # Warm the cache for every service, port and client
  python -m servicewatch.main --preload --force
        """
    )

    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument(
        "--login",
        metavar="PASSWORD",
        help="Log in and store the session token"
    )
    mode_group.add_argument(
        "--list",
        action="store_true",
        help="Load and print the service list"
    )
    mode_group.add_argument(
        "--preload",
        action="store_true",
        help="Preload all service, port and user details"
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Bypass the cache when preloading"
    )
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Traffic window in days (default from DEFAULT_WINDOW_DAYS)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser.parse_args(argv)


async def run_login(client: AsyncGatewayClient, password: str) -> bool:
    logger = logging.getLogger(__name__)
    try:
        await client.login(password)
    except GatewayError as error:
        logger.error(f"[ERROR] Login failed: {error}")
        return False
    return True


async def run_list(store: ServicesStore) -> bool:
    """
    Print one line per service.

    Returns:
        True if the list was loaded
    """
    if not await store.load_services(force=True):
        logging.getLogger(__name__).error(f"[ERROR] {store.error}")
        return False

    for service in store.services:
        name = service.get("custom_name") or service.get("name") or ""
        print(f"{service.get('id')}\t{name}")
    return True


async def run_preload(store: ServicesStore, forced: bool) -> bool:
    """
    Preload everything and print the outcome.

    Returns:
        True unless the service list itself could not be loaded
    """
    summary = await store.preload_all_details(forced=forced)
    if summary.service_count == 0 and store.error:
        logging.getLogger(__name__).error(f"[ERROR] {store.error}")
        return False

    print(
        f"services: {summary.service_details_ok}/{summary.service_count} | "
        f"ports: {summary.ports_ok} ok, {summary.ports_failed} failed | "
        f"users: {summary.users_ok} ok, {summary.users_failed} failed | "
        f"{summary.duration_seconds:.1f}s"
    )
    for kind, count in store.cache.get_stats().items():
        print(f"  cached {kind}: {count}")
    return True


async def run(args: argparse.Namespace, config: Config) -> bool:
    token_store = SessionTokenStore(config.session.token_file)
    window_days = args.days or config.operational.default_window_days

    async with AsyncGatewayClient(config.gateway, config.operational, token_store) as client:
        if args.login:
            return await run_login(client, args.login)

        store = ServicesStore(
            client,
            default_window_days=window_days,
            preload_concurrency=config.operational.preload_concurrency
        )
        if args.list:
            return await run_list(store)
        return await run_preload(store, args.force)


def main(argv=None) -> int:
    """
    Main entry point for ServiceWatch.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    args = parse_arguments(argv)

    try:
        config = Config()
    except ValueError as error:
        print(f"[ERROR] Failed to load configuration: {error}", file=sys.stderr)
        return 1

    setup_logging(verbose=args.verbose, log_dir=config.log_dir)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("ServiceWatch - Starting")
    logger.info(f"Timestamp: {datetime.now(timezone.utc).isoformat()}")
    logger.info("=" * 60)

    try:
        success = asyncio.run(run(args, config))
    except KeyboardInterrupt:
        logger.warning("[WARN] Operation interrupted by user")
        return 130
    except Exception as error:
        logger.error(f"[ERROR] Operation failed: {error}", exc_info=True)
        return 1

    if success:
        logger.info("[DONE] ServiceWatch - Complete")
    else:
        logger.error("[ERROR] ServiceWatch - Failed")

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
