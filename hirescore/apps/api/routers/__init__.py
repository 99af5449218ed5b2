from .metrics import router as metrics_router
from .schedule import router as schedule_router

__all__ = ["metrics_router", "schedule_router"]
