"""FastAPI routers."""

from app.routers.health import router as health_router
from app.routers.process import router as process_router
from app.routers.documents import router as documents_router
from app.routers.subscription import router as subscription_router

__all__ = ["health_router", "process_router", "documents_router", "subscription_router"]
