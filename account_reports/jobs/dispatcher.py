"""Job dispatcher interface."""

from abc import ABC, abstractmethod


class JobDispatcher(ABC):
    """Hands a job off to an execution context the caller never waits on.

    The job id is the whole payload; everything else lives in the job record.
    """

    @abstractmethod
    async def submit(self, job_id: str) -> None:
        """Queue a job for background execution and return immediately."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start the dispatcher (e.g., start worker loops)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the dispatcher gracefully."""
        ...

    @property
    @abstractmethod
    def pending(self) -> int:
        """Number of submitted jobs not yet picked up."""
        ...
