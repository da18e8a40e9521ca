"""Service layer package."""

from .availability_service import AvailabilityService
from .outbox_dispatcher import DrainReport, OutboxDispatcher
from .results import ResultCode, ServiceResult

__all__ = [
    "AvailabilityService",
    "DrainReport",
    "OutboxDispatcher",
    "ResultCode",
    "ServiceResult",
]
