from typing import Optional

from pydantic import Field

from wp_deployer.core.schemas import CamelModel
from wp_deployer.modules.hosting.schemas import DbInstructions
from wp_deployer.modules.jobs.models import JobStatus


class UploadRequest(CamelModel):
    credential_id: str = Field(..., min_length=1)


class UploadResult(CamelModel):
    message: str
    job_id: str
    domain: str
    credential_name: Optional[str] = None
    status: JobStatus
    manual_db_setup: bool = False
    db_instructions: Optional[DbInstructions] = None
    next_step: str


class CancelResponse(CamelModel):
    job_id: str
    cancelled: bool
    message: str
