"""
Health check script for Planboard infrastructure.

This script validates connectivity and health of every dependency the
mutation pipeline needs:
- PostgreSQL audit store
- Redis mutation queue
- Odoo JSON-RPC endpoint (including authentication)

Usage:
    python scripts/health_check.py [--verbose] [--skip-database]

Options:
    --verbose        Show detailed health check information
    --skip-database  Do not check the audit store
"""

import argparse
import asyncio
import logging
import sys

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from services.planner.app.core.config import PlannerServiceSettings
from shared.exceptions import (
    ConfigurationError,
    ErpError,
    QueueError,
    TransportError,
)
from shared.odoo import OdooSettings, create_odoo_client
from shared.queue import QueueSettings, RedisClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class HealthCheckResult:
    """Result of a health check."""

    def __init__(self, service: str, healthy: bool, message: str, details: dict | None = None):
        self.service = service
        self.healthy = healthy
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        status = "✓" if self.healthy else "✗"
        return f"[{status}] {self.service}: {self.message}"


async def check_database(url: str) -> HealthCheckResult:
    """
    Check audit store connectivity.

    Args:
        url: SQLAlchemy async database URL

    Returns:
        HealthCheckResult with connection status
    """
    engine = create_async_engine(url)
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            result.scalar()

        return HealthCheckResult(
            service="Database",
            healthy=True,
            message="Connected successfully",
            details={"url": url.split("@")[-1]},  # Hide credentials
        )

    except Exception as e:
        return HealthCheckResult(
            service="Database",
            healthy=False,
            message=f"Connection failed: {e}",
        )
    finally:
        await engine.dispose()


async def check_redis(settings: QueueSettings) -> HealthCheckResult:
    """
    Check the Redis mutation queue.

    Args:
        settings: Queue settings

    Returns:
        HealthCheckResult with connection status and queue depth
    """
    client = RedisClient(
        url=settings.url,
        socket_timeout=settings.socket_timeout,
        socket_connect_timeout=settings.socket_connect_timeout,
    )
    try:
        await client.connect()
        length = await client.llen(settings.queue_name)

        return HealthCheckResult(
            service="Redis",
            healthy=True,
            message="Connected successfully",
            details={"queue": settings.queue_name, "pending_calls": length},
        )

    except QueueError as e:
        return HealthCheckResult(
            service="Redis",
            healthy=False,
            message=e.message,
        )
    finally:
        await client.disconnect()


async def check_odoo(settings: OdooSettings) -> HealthCheckResult:
    """
    Check that Odoo is reachable and accepts the configured credentials.

    Args:
        settings: Odoo settings

    Returns:
        HealthCheckResult with authentication status
    """
    try:
        client = create_odoo_client(settings)
    except ConfigurationError as e:
        return HealthCheckResult(service="Odoo", healthy=False, message=e.message)

    try:
        uid = await client.authenticate()
        return HealthCheckResult(
            service="Odoo",
            healthy=True,
            message="Authenticated successfully",
            details={"url": settings.url, "database": settings.database, "uid": uid},
        )

    except TransportError as e:
        cause = "configuration" if e.is_configuration_fault else "network"
        return HealthCheckResult(
            service="Odoo",
            healthy=False,
            message=f"{e.message} (likely {cause} problem)",
            details={"error_code": e.error_code},
        )
    except ErpError as e:
        return HealthCheckResult(
            service="Odoo",
            healthy=False,
            message=e.message,
            details={"error_code": e.error_code},
        )
    finally:
        await client.close()


async def run_health_checks(
    verbose: bool = False,
    skip_database: bool = False,
) -> list[HealthCheckResult]:
    """
    Run health checks for all services.

    Args:
        verbose: If True, show detailed information
        skip_database: If True, do not check the audit store

    Returns:
        List of HealthCheckResult objects
    """
    logger.info("Running health checks for Planboard infrastructure...")

    checks = [check_redis(QueueSettings()), check_odoo(OdooSettings())]
    if not skip_database:
        checks.append(check_database(PlannerServiceSettings().database_url))

    # Run checks concurrently
    results = await asyncio.gather(*checks, return_exceptions=True)

    all_results = []
    for result in results:
        if isinstance(result, BaseException):
            logger.error(f"Unexpected error during health check: {result}")
        else:
            all_results.append(result)

    # Print results
    for result in all_results:
        logger.info(str(result))

        if verbose and result.details:
            for key, value in result.details.items():
                logger.info(f"  {key}: {value}")

    return all_results


async def main_async(verbose: bool, skip_database: bool) -> int:
    """
    Async main entry point.

    Returns:
        Exit code (0 if all healthy, 1 if any unhealthy)
    """
    results = await run_health_checks(verbose, skip_database)

    all_healthy = bool(results) and all(r.healthy for r in results)

    if all_healthy:
        logger.info("\n✓ All services are healthy")
        return 0
    else:
        unhealthy = [r.service for r in results if not r.healthy]
        logger.error(f"\n✗ Unhealthy services: {', '.join(unhealthy) or 'unknown'}")
        return 1


def main() -> int:
    """
    Main entry point for the script.

    Returns:
        Exit code (0 if all healthy, 1 if any unhealthy)
    """
    parser = argparse.ArgumentParser(description="Health check for Planboard infrastructure")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show detailed health check information",
    )
    parser.add_argument(
        "--skip-database",
        action="store_true",
        help="Do not check the audit store",
    )

    args = parser.parse_args()

    return asyncio.run(main_async(args.verbose, args.skip_database))


if __name__ == "__main__":
    sys.exit(main())
