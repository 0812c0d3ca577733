# Store: <data_dir>/jobs/<id>.json
# This file documents the persisted record layout and the status lattice.
# Reads and writes go through JobService in service.py

"""
Expected record structure (JSON keys are camelCase):
- id: uuid4 string (immutable)
- template, domain, email, phone, address, logo: submitted at creation (immutable)
- status: created | uploading | waiting-for-db | uploaded | failed
- credentialId: saved credential used by the upload (set when the upload starts)
- dbName, dbUser, dbPass: set once database provisioning returns
- manualDbSetup: bool
- dbInstructions: object (nullable) - cpanelUrl, databaseName, databaseUser, databasePassword, domain
- error: text (only when status = failed)
- timestamp: creation time
- uploadStartedAt, uploadCompletedAt, failedAt: each written at most once
"""
from enum import Enum
from typing import Dict, FrozenSet


class JobStatus(str, Enum):
    CREATED = "created"
    UPLOADING = "uploading"
    WAITING_FOR_DB = "waiting-for-db"
    UPLOADED = "uploaded"
    FAILED = "failed"


TERMINAL_STATUSES: FrozenSet[JobStatus] = frozenset({JobStatus.UPLOADED, JobStatus.FAILED})

ALLOWED_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.CREATED: frozenset({JobStatus.UPLOADING, JobStatus.FAILED}),
    JobStatus.UPLOADING: frozenset({JobStatus.WAITING_FOR_DB, JobStatus.UPLOADED, JobStatus.FAILED}),
    JobStatus.WAITING_FOR_DB: frozenset({JobStatus.UPLOADED, JobStatus.FAILED}),
    JobStatus.UPLOADED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]
