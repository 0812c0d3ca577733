import json
import os
import tempfile
import threading
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from wp_deployer.config import settings
from wp_deployer.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class FileStore:
    """Keyed JSON persistence: one `<id>.json` file per record."""

    def __init__(self, directory: Path, label: str):
        self.directory = Path(directory)
        self.label = label
        self._lock = threading.Lock()

    def _path(self, record_id: str) -> Path:
        # Ids come from URLs; keep them inside the store directory
        if not record_id or "/" in record_id or "\\" in record_id or record_id.startswith("."):
            raise NotFoundError(f"{self.label} not found")
        return self.directory / f"{record_id}.json"

    def _write(self, record_id: str, data: Dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{record_id}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, default=str)
            os.replace(tmp_path, self._path(record_id))
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def insert(self, record_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self._write(record_id, data)
        return data

    def get(self, record_id: str) -> Dict[str, Any]:
        path = self._path(record_id)
        try:
            with open(path) as f:
                return json.load(f)
        except FileNotFoundError:
            raise NotFoundError(f"{self.label} not found")

    def update(self, record_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            if not self._path(record_id).is_file():
                raise NotFoundError(f"{self.label} not found")
            self._write(record_id, data)
        return data

    def delete(self, record_id: str) -> None:
        with self._lock:
            try:
                self._path(record_id).unlink()
            except FileNotFoundError:
                raise NotFoundError(f"{self.label} not found")

    def list_all(self) -> List[Dict[str, Any]]:
        if not self.directory.exists():
            return []
        records = []
        for path in sorted(self.directory.glob("*.json")):
            try:
                with open(path) as f:
                    records.append(json.load(f))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable {self.label.lower()} record {path.name}: {e}")
        return records


class StoreRegistry:
    _jobs: Optional[FileStore] = None
    _credentials: Optional[FileStore] = None

    @classmethod
    def get_jobs_store(cls) -> FileStore:
        if cls._jobs is None:
            cls._jobs = FileStore(settings.jobs_path, "Job")
        return cls._jobs

    @classmethod
    def get_credentials_store(cls) -> FileStore:
        if cls._credentials is None:
            cls._credentials = FileStore(settings.credentials_path, "Credential")
        return cls._credentials

    @classmethod
    def reset(cls):
        cls._jobs = None
        cls._credentials = None


def get_jobs_store() -> FileStore:
    return StoreRegistry.get_jobs_store()


def get_credentials_store() -> FileStore:
    return StoreRegistry.get_credentials_store()


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
