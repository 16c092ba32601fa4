"""Account report job service - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from account_reports.api.v1 import health as health_api
from account_reports.api.v1 import reports as reports_api
from account_reports.api.v1.errors import register_error_handlers
from account_reports.api.v1.router import v1_router
from account_reports.config import Settings, settings as default_settings
from account_reports.jobs.in_process_queue import InProcessQueue
from account_reports.jobs.reaper import JobReaper
from account_reports.jobs.store import JobStore
from account_reports.logging_config import configure_logging
from account_reports.resources.store import (
    InMemoryResourceStore,
    ResourceStore,
    SupabaseResourceStore,
)
from account_reports.services.initiator import JobInitiator
from account_reports.services.status import StatusService
from account_reports.services.worker import ReportWorker
from account_reports.storage.artifacts import ArtifactStore, LocalArtifactStore

logger = logging.getLogger(__name__)


def build_resource_store(settings: Settings) -> ResourceStore:
    if settings.resource_backend == "supabase":
        return SupabaseResourceStore.from_settings(settings)
    if settings.resource_backend != "memory":
        raise ValueError(f"Unknown resource backend: {settings.resource_backend}")

    store = InMemoryResourceStore()
    if settings.seed_demo_data:
        from account_reports.resources.demo_data import seed_demo_accounts

        seed_demo_accounts(store)
    return store


def create_app(
    settings: Optional[Settings] = None,
    resource_store: Optional[ResourceStore] = None,
    artifact_store: Optional[ArtifactStore] = None,
) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        configure_logging(settings.log_level)
        logger.info("Starting account report service on port %d", settings.port)
        logger.info("Resource backend: %s", settings.resource_backend)

        resources = resource_store or build_resource_store(settings)
        artifacts = artifact_store or LocalArtifactStore(
            base_dir=settings.artifact_dir, ttl_hours=settings.job_retention_hours
        )
        jobs = JobStore()

        worker = ReportWorker(jobs, resources, artifacts, settings)
        dispatcher = InProcessQueue(worker_fn=worker, concurrency=settings.worker_concurrency)
        reaper = JobReaper(
            jobs,
            artifacts,
            interval_seconds=settings.reaper_interval_seconds,
            retention=timedelta(hours=settings.job_retention_hours),
        )
        await dispatcher.start()
        await reaper.start()

        # Wire services into API endpoints
        reports_api.set_services(
            JobInitiator(jobs, resources, dispatcher, settings),
            StatusService(jobs),
            jobs,
            artifacts,
        )
        health_api.set_services(dispatcher, jobs)
        app.state.job_store = jobs
        app.state.dispatcher = dispatcher
        app.state.reaper = reaper

        yield

        logger.info("Shutting down account report service")
        await reaper.stop()
        await dispatcher.stop()
        if isinstance(artifacts, LocalArtifactStore):
            artifacts.cleanup_expired()
        reports_api.set_services(None, None, None, None)
        health_api.set_services(None, None)

    app = FastAPI(
        title="Account Report Service",
        description="Asynchronous account report generation with status polling",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(health_api.router, tags=["health"])  # GET /health at root
    app.include_router(v1_router)  # All /api/v1/* endpoints
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=default_settings.port)
