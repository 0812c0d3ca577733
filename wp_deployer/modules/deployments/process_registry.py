"""Thread-safe registry of job_id -> active orchestration run (one run per job)."""
import threading
import time
import logging
from contextlib import contextmanager
from typing import Iterator

from wp_deployer.core.exceptions import ConnectorError, JobBusyError

logger = logging.getLogger(__name__)
_lock = threading.Lock()
_registry: dict[str, "RunToken"] = {}


class RunToken:
    """Cancellation flag plus overall deadline for one run."""

    def __init__(self, job_id: str, timeout_seconds: float):
        self.job_id = job_id
        self.timeout_seconds = timeout_seconds
        self.deadline = time.monotonic() + timeout_seconds
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    def check(self) -> None:
        """Raise if the run was cancelled or ran past its deadline."""
        if self._cancelled.is_set():
            raise ConnectorError("Deployment cancelled")
        if time.monotonic() > self.deadline:
            raise ConnectorError(f"Deployment timed out after {int(self.timeout_seconds)} seconds")


def busy_error(job_id: str) -> JobBusyError:
    return JobBusyError("A deployment run is already active for this job", details={"jobId": job_id})


@contextmanager
def claim(job_id: str, timeout_seconds: float) -> Iterator[RunToken]:
    token = RunToken(job_id, timeout_seconds)
    with _lock:
        if job_id in _registry:
            raise busy_error(job_id)
        _registry[job_id] = token
    logger.debug(f"Claimed job {job_id}")
    try:
        yield token
    finally:
        with _lock:
            _registry.pop(job_id, None)
        logger.debug(f"Released job {job_id}")


def is_active(job_id: str) -> bool:
    with _lock:
        return job_id in _registry


def cancel(job_id: str) -> bool:
    """Request cancellation for job_id. Returns True if a run was found."""
    with _lock:
        token = _registry.get(job_id)
    if token is None:
        return False
    token.cancel()
    logger.info(f"Cancellation requested for job {job_id}")
    return True
