"""Background workers for the availability service."""

from .base import BaseWorker
from .manager import WorkerManager
from .outbox_worker import OutboxDispatchWorker

__all__ = ["BaseWorker", "OutboxDispatchWorker", "WorkerManager"]
