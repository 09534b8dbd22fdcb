"""
Dependency injection for planner service.

Provides FastAPI dependencies for database sessions, the mutation queue,
the Odoo client and the pipeline components.
"""

from collections.abc import AsyncGenerator
from typing import Annotated, Any

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from services.planner.app.core.config import PlannerServiceSettings, get_settings
from services.planner.app.db.repositories.action_repository import ActionRepository
from services.planner.app.db.repositories.session_repository import MutationSessionRepository
from services.planner.app.services.mutation_service import MutationService
from shared.exceptions import ConfigurationError
from shared.mutations.compiler import PayloadCompiler
from shared.mutations.reconciler import StalenessReconciler
from shared.odoo import OdooClient, OdooSettings, create_odoo_client, get_odoo_settings
from shared.odoo.transport import JsonRpcTransport
from shared.queue import MutationQueue, RedisClient, RedisMutationQueue, get_queue_settings
from workers.rpc_drain.config import WorkerSettings
from workers.rpc_drain.executor import RpcPayloadExecutor
from workers.rpc_drain.worker import RpcDrainWorker

# Global engine (initialized once)
_engine = None
_async_session_maker = None
_redis_client: RedisClient | None = None
_odoo_client: OdooClient | None = None


def get_engine(settings: PlannerServiceSettings) -> AsyncEngine:
    """
    Get or create database engine.

    Args:
        settings: Service settings

    Returns:
        SQLAlchemy async engine
    """
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
            echo=settings.database_echo,
        )
    return _engine


def get_session_maker(settings: PlannerServiceSettings) -> Any:
    """
    Get or create session maker.

    Args:
        settings: Service settings

    Returns:
        SQLAlchemy session maker
    """
    global _async_session_maker
    if _async_session_maker is None:
        engine = get_engine(settings)
        _async_session_maker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _async_session_maker


async def get_db_session(
    settings: Annotated[PlannerServiceSettings, Depends(get_settings)],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session dependency.

    Args:
        settings: Service settings

    Yields:
        Database session
    """
    session_maker = get_session_maker(settings)
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_redis_client() -> RedisClient:
    """
    Get the shared, connected Redis client.

    Returns:
        Redis client

    Raises:
        QueueConnectionError: Redis is unreachable
    """
    global _redis_client
    if _redis_client is None:
        queue_settings = get_queue_settings()
        client = RedisClient(
            url=queue_settings.url,
            max_connections=queue_settings.max_connections,
            socket_timeout=queue_settings.socket_timeout,
            socket_connect_timeout=queue_settings.socket_connect_timeout,
        )
        await client.connect()
        _redis_client = client
    return _redis_client


def get_mutation_queue(
    redis_client: Annotated[RedisClient, Depends(get_redis_client)],
) -> MutationQueue:
    """
    Get mutation queue dependency.

    Args:
        redis_client: Connected Redis client

    Returns:
        Redis-backed mutation queue
    """
    return RedisMutationQueue(redis_client, get_queue_settings().queue_name)


def get_odoo_client() -> OdooClient:
    """
    Get the shared Odoo client; its uid is cached across requests.

    Raises:
        ConfigurationError: Odoo credentials are incomplete
    """
    global _odoo_client
    if _odoo_client is None:
        _odoo_client = create_odoo_client()
    return _odoo_client


def get_session_repository(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> MutationSessionRepository:
    """
    Get session repository dependency.

    Args:
        db: Database session

    Returns:
        Session repository instance
    """
    return MutationSessionRepository(db)


def get_action_repository(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ActionRepository:
    """
    Get action repository dependency.

    Args:
        db: Database session

    Returns:
        Action repository instance
    """
    return ActionRepository(db)


def get_reconciler(
    client: Annotated[OdooClient, Depends(get_odoo_client)],
) -> StalenessReconciler:
    """Get reconciler dependency."""
    return StalenessReconciler(client)


def get_compiler(
    client: Annotated[OdooClient, Depends(get_odoo_client)],
    queue: Annotated[MutationQueue, Depends(get_mutation_queue)],
) -> PayloadCompiler:
    """Get compiler dependency."""
    return PayloadCompiler(client, queue)


async def get_drain_worker(
    queue: Annotated[MutationQueue, Depends(get_mutation_queue)],
    odoo_settings: Annotated[OdooSettings, Depends(get_odoo_settings)],
) -> AsyncGenerator[RpcDrainWorker, None]:
    """
    Get a drain worker bound to the Odoo endpoint.

    Only the URL is needed; the queued payloads carry their credentials.

    Yields:
        Drain worker (its HTTP client is closed after the request)

    Raises:
        ConfigurationError: ODOO_URL is not set
    """
    if not odoo_settings.url:
        raise ConfigurationError("ODOO_URL environment variable is required", key="ODOO_URL")

    transport = JsonRpcTransport(
        base_url=odoo_settings.url,
        connection_timeout=odoo_settings.connection_timeout,
        request_timeout=odoo_settings.request_timeout,
    )
    worker = RpcDrainWorker(
        queue=queue,
        executor=RpcPayloadExecutor(transport),
        settings=WorkerSettings(
            odoo_url=odoo_settings.url,
            connection_timeout=odoo_settings.connection_timeout,
            request_timeout=odoo_settings.request_timeout,
            dequeue_timeout=get_queue_settings().dequeue_timeout,
        ),
    )
    try:
        yield worker
    finally:
        await worker.close()


def get_mutation_service(
    session_repo: Annotated[MutationSessionRepository, Depends(get_session_repository)],
    action_repo: Annotated[ActionRepository, Depends(get_action_repository)],
) -> MutationService:
    """
    Get mutation service dependency.

    Args:
        session_repo: Session repository
        action_repo: Action repository

    Returns:
        Mutation service instance
    """
    return MutationService(session_repo=session_repo, action_repo=action_repo)


def get_apply_service(
    service: Annotated[MutationService, Depends(get_mutation_service)],
    compiler: Annotated[PayloadCompiler, Depends(get_compiler)],
) -> MutationService:
    """Mutation service wired with a compiler."""
    service.compiler = compiler
    return service


def get_drain_service(
    service: Annotated[MutationService, Depends(get_mutation_service)],
    worker: Annotated[RpcDrainWorker, Depends(get_drain_worker)],
) -> MutationService:
    """Mutation service wired with a drain worker."""
    service.worker = worker
    return service


async def close_connections() -> None:
    """Close all global connections."""
    global _engine, _async_session_maker, _redis_client, _odoo_client

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_maker = None

    if _redis_client is not None:
        await _redis_client.disconnect()
        _redis_client = None

    if _odoo_client is not None:
        await _odoo_client.close()
        _odoo_client = None
