"""Aggregate all v1 API routers."""

from fastapi import APIRouter
from account_reports.api.v1.health import router as health_router
from account_reports.api.v1.reports import router as reports_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(reports_router, tags=["reports"])
