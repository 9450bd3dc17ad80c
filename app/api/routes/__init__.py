from __future__ import annotations

from app.api.routes.admin import router as admin_router
from app.api.routes.health import router as health_router
from app.api.routes.signals import router as signals_router

__all__ = ["admin_router", "health_router", "signals_router"]
