"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Resource store
    resource_backend: str = "memory"  # "memory" or "supabase"
    seed_demo_data: bool = True
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Artifact storage
    artifact_dir: Optional[str] = None

    # Job processing
    worker_concurrency: int = 2
    job_timeout_seconds: int = 900
    reaper_interval_seconds: float = 30.0
    job_retention_hours: int = 24

    # Completion estimate (advisory only)
    estimate_baseline_seconds: float = 5.0
    estimate_seconds_per_item: float = 0.05
    estimate_extended_history_seconds: float = 30.0

    # Service
    log_level: str = "INFO"
    port: int = 8001

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
