"""Pydantic schemas for request/response validation."""

from .availability import *  # noqa: F403
from .common import *  # noqa: F403
from .events import *  # noqa: F403
from .health import *  # noqa: F403
from .outbox import *  # noqa: F403
