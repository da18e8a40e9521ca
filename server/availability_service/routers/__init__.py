"""FastAPI routers package."""

from .availability import router as availability_router
from .events import router as events_router
from .health import router as health_router
from .metrics import router as metrics_router
from .outbox import router as outbox_router

__all__ = [
    "availability_router",
    "events_router",
    "health_router",
    "metrics_router",
    "outbox_router",
]
