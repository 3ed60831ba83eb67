"""Startup and shutdown logic for the Content Repository Service."""

from __future__ import annotations

from dishka import AsyncContainer, make_async_container
from inkwell_service_libs.logging_utils import configure_service_logging, create_service_logger

from services.content_repository_service.config import Settings
from services.content_repository_service.di import ContentRepositoryServiceProvider

# Process-wide container; tests replace it through reset_di_container
_app_container_ref: AsyncContainer | None = None


def create_di_container(settings: Settings | None = None) -> AsyncContainer:
    """Creates and returns the DI AsyncContainer."""
    global _app_container_ref
    logger = create_service_logger("content_repository.startup")
    container = make_async_container(ContentRepositoryServiceProvider(settings))
    _app_container_ref = container
    logger.info("DI AsyncContainer created.")
    return container


def get_di_container() -> AsyncContainer:
    """Return the current container, creating it on first use."""
    if _app_container_ref is None:
        return create_di_container()
    return _app_container_ref


async def initialize_services(settings: Settings) -> AsyncContainer:
    """Configure logging and build the container for the given settings."""
    configure_service_logging(
        settings.SERVICE_NAME,
        environment=settings.ENVIRONMENT.value,
        log_level=settings.LOG_LEVEL,
    )
    return create_di_container(settings)


async def shutdown_services() -> None:
    """Gracefully shutdown the service's DI container."""
    global _app_container_ref
    logger = create_service_logger("content_repository.startup")

    if _app_container_ref:
        await _app_container_ref.close()
        _app_container_ref = None
        logger.info("Content Repository Service DI container closed")


async def reset_di_container(settings: Settings | None = None) -> AsyncContainer:
    """Close the current container and build a fresh one. Intended for tests."""
    await shutdown_services()
    return create_di_container(settings)
