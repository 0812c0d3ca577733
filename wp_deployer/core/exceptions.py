"""
Error taxonomy shared by services, the orchestrator and the HTTP layer.
Each error maps to one HTTP status in main.py.
"""
from typing import Any, Optional


class DeployerError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(DeployerError):
    """Malformed or missing request fields. Never retried."""
    status_code = 400


class NotFoundError(DeployerError):
    status_code = 404


class InvalidStateError(DeployerError):
    """Operation not allowed from the job's current status."""
    status_code = 409


class JobBusyError(DeployerError):
    """Another orchestration run already holds the job."""
    status_code = 409


class ConnectorError(DeployerError):
    """Hosting side failure: credentials, API, FTP or a missing artifact."""
    status_code = 500


class ArtifactMissingError(ConnectorError):
    def __init__(self, artifact: str, path: Any):
        super().__init__(f"{artifact} not found at: {path}")
        self.artifact = artifact
        self.path = path
