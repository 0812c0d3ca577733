from pydantic import BaseModel
from typing import Optional, List, Any, Dict

from wp_deployer.core.schemas import CamelModel
from wp_deployer.modules.hosting.schemas import DbInstructions
from wp_deployer.modules.jobs.models import JobStatus


class Job(CamelModel):
    id: str
    template: str
    domain: str
    email: str
    phone: str
    address: str
    logo: str
    status: JobStatus = JobStatus.CREATED
    credential_id: Optional[str] = None
    db_name: Optional[str] = None
    db_user: Optional[str] = None
    db_pass: Optional[str] = None
    manual_db_setup: bool = False
    db_instructions: Optional[DbInstructions] = None
    error: Optional[str] = None
    timestamp: str
    upload_started_at: Optional[str] = None
    upload_completed_at: Optional[str] = None
    failed_at: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def job_info(self) -> Dict[str, Any]:
        """Descriptor consumed by the remote installer (job-info.json)."""
        return {
            "id": self.id,
            "domain": self.domain,
            "email": self.email,
            "dbName": self.db_name,
            "dbUser": self.db_user,
            "dbPass": self.db_pass,
            "template": self.template,
            "logo": self.logo,
            "address": self.address,
            "phone": self.phone,
            "title": self.domain,
        }


class JobSummary(CamelModel):
    id: str
    template: str
    domain: str
    status: JobStatus
    timestamp: str


class JobCreateResponse(CamelModel):
    message: str
    job_id: str
    job_data: Job
    next_step: str


class JobListResponse(BaseModel):
    jobs: List[JobSummary]


class JobDetailResponse(BaseModel):
    job: Job


class JobDeleteResponse(CamelModel):
    message: str
    job_id: str
