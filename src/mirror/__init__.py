"""Mirror service facade."""

from src.mirror.factory import build_service
from src.mirror.models import HealthReport, RefreshResult, StatusCounts
from src.mirror.service import MirrorService


__all__ = [
    "HealthReport",
    "MirrorService",
    "RefreshResult",
    "StatusCounts",
    "build_service",
]
