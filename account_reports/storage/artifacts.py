"""Artifact storage for finished reports, with TTL cleanup."""

import logging
import os
import shutil
import tempfile
import time
from abc import ABC, abstractmethod
from typing import Optional

from account_reports.errors import ArtifactNotFound

logger = logging.getLogger(__name__)


class ArtifactStore(ABC):
    @abstractmethod
    def put(self, job_id: str, data: bytes, extension: str) -> str:
        """Persist a blob and return an opaque locator for it."""
        ...

    @abstractmethod
    def get(self, locator: str) -> bytes:
        ...

    @abstractmethod
    def delete(self, locator: str) -> None:
        ...


class LocalArtifactStore(ArtifactStore):
    """Stores each job's artifact under ``<base_dir>/<job_id>/``.

    Locators are ``<job_id>/<filename>`` paths relative to the base dir.
    """

    def __init__(self, base_dir: Optional[str] = None, ttl_hours: int = 24):
        if base_dir:
            self._base_dir = os.path.abspath(base_dir)
        else:
            self._base_dir = os.path.join(tempfile.gettempdir(), "account_reports")
        os.makedirs(self._base_dir, exist_ok=True)
        self._ttl_seconds = ttl_hours * 3600

    @property
    def base_dir(self) -> str:
        return self._base_dir

    def put(self, job_id: str, data: bytes, extension: str) -> str:
        job_dir = os.path.join(self._base_dir, job_id)
        os.makedirs(job_dir, exist_ok=True)
        filename = f"report.{extension.lstrip('.')}"
        path = os.path.join(job_dir, filename)
        # Write then rename so a reader never sees a partial file.
        tmp_path = path + ".part"
        with open(tmp_path, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
        return f"{job_id}/{filename}"

    def get(self, locator: str) -> bytes:
        path = self._resolve(locator)
        if not os.path.isfile(path):
            raise ArtifactNotFound(f"Artifact '{locator}' was not found.")
        with open(path, "rb") as f:
            return f.read()

    def delete(self, locator: str) -> None:
        path = self._resolve(locator)
        job_dir = os.path.dirname(path)
        if os.path.isdir(job_dir) and job_dir != self._base_dir:
            shutil.rmtree(job_dir, ignore_errors=True)

    def cleanup_expired(self) -> int:
        """Remove job directories older than TTL. Returns count of removed dirs."""
        now = time.time()
        removed = 0
        if not os.path.exists(self._base_dir):
            return 0
        for entry in os.listdir(self._base_dir):
            job_dir = os.path.join(self._base_dir, entry)
            if not os.path.isdir(job_dir):
                continue
            if now - os.path.getmtime(job_dir) > self._ttl_seconds:
                shutil.rmtree(job_dir, ignore_errors=True)
                removed += 1
        if removed:
            logger.info("Removed %d expired artifact dir(s)", removed)
        return removed

    def _resolve(self, locator: str) -> str:
        path = os.path.abspath(os.path.join(self._base_dir, locator))
        # Locators may only point inside the base dir.
        if os.path.commonpath([path, self._base_dir]) != self._base_dir or path == self._base_dir:
            raise ArtifactNotFound(f"Artifact '{locator}' was not found.")
        return path
