"""FastAPI dependencies for the service container, sessions and services."""

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..services.availability_service import AvailabilityService
from .container import ServiceContainer
from .database import session_scope


def get_container(request: Request) -> ServiceContainer:
    """Return the container attached to the application at startup."""
    return request.app.state.container


async def get_db(
    container: ServiceContainer = Depends(get_container),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency that provides async database sessions.

    Yields:
        AsyncSession: Database session
    """
    async with session_scope(container.session_factory) as session:
        yield session


def get_availability_service(
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> AvailabilityService:
    return container.availability_service(db)
