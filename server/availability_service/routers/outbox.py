"""Outbox router for manual draining and dead-letter inspection."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.container import ServiceContainer
from ..core.dependencies import get_container, get_db
from ..repositories.outbox_store import SqlOutboxStore
from ..schemas.outbox import DeadLetteredMessage, DeadLetterListResponse, DrainResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/outbox", tags=["outbox"])


@router.post("/drain", response_model=DrainResponse)
async def drain_outbox(
    batch_size: Optional[int] = Query(None, alias="batchSize", ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    """Run one dispatch cycle immediately instead of waiting for the worker."""
    dispatcher = container.outbox_dispatcher(db)
    report = await dispatcher.drain(batch_size or container.settings.outbox_batch_size)

    logger.info("Manual outbox drain completed", extra=report.model_dump())

    response_data = DrainResponse(**report.model_dump())
    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json", by_alias=True)
    )


@router.get("/dead-letters", response_model=DeadLetterListResponse)
async def list_dead_letters(
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """List messages that exhausted their delivery attempts."""
    messages = await SqlOutboxStore(db).list_dead_lettered(limit)
    response_data = DeadLetterListResponse(
        messages=[DeadLetteredMessage.from_message(message) for message in messages]
    )
    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json", by_alias=True)
    )
