from fastapi import APIRouter, FastAPI

from .analytics import router as analytics_router, scaffold_router as analytics_scaffold_router
from .reports import router as reports_router, scaffold_router as reports_scaffold_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(analytics_router, tags=["analytics"])
    app.include_router(reports_router, tags=["reports"])

    app.include_router(analytics_scaffold_router, prefix="/_scaffold/analytics", tags=["scaffold-analytics"])
    app.include_router(reports_scaffold_router, prefix="/_scaffold/reports", tags=["scaffold-reports"])


__all__ = ["include_modular_routers", "APIRouter"]
