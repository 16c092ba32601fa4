"""Health check endpoint."""

import platform
import sys

from fastapi import APIRouter

router = APIRouter()

# Set by main.py during lifespan (same pattern as reports.py)
_dispatcher = None
_job_store = None


def set_services(dispatcher, job_store):
    global _dispatcher, _job_store
    _dispatcher = dispatcher
    _job_store = job_store


@router.get("/health")
async def health_check():
    """Service health, queue depth, and job counts."""
    ready = _dispatcher is not None and _job_store is not None
    return {
        "status": "healthy" if ready else "starting",
        "workers_running": bool(ready and _dispatcher.running),
        "queued_jobs": _dispatcher.pending if ready else 0,
        "jobs": _job_store.count_by_status() if ready else {},
        "python_version": sys.version,
        "platform": platform.platform(),
    }
