import re
import uuid
import shutil
import logging
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional

from wp_deployer.core.exceptions import InvalidStateError, JobBusyError, ValidationError
from wp_deployer.database.file_store import FileStore, utc_now
from wp_deployer.modules.deployments import process_registry
from wp_deployer.modules.jobs.models import JobStatus, can_transition
from wp_deployer.modules.hosting.schemas import DbInstructions
from wp_deployer.modules.jobs.schemas import Job, JobSummary

logger = logging.getLogger(__name__)

DOMAIN_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]{1,61}[a-zA-Z0-9]\.[a-zA-Z]{2,}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
REQUIRED_FIELDS = ("template", "domain", "email", "phone", "address", "logo")


def validate_submission(fields: Dict[str, Optional[str]]) -> None:
    """Raise ValidationError listing every missing or malformed field."""
    missing = [name for name in REQUIRED_FIELDS if not (fields.get(name) or "").strip()]
    if missing:
        raise ValidationError("Missing required fields", details=missing)
    invalid = []
    if not DOMAIN_PATTERN.match(fields["domain"].strip()):
        invalid.append("domain")
    if not EMAIL_PATTERN.match(fields["email"].strip()):
        invalid.append("email")
    if invalid:
        raise ValidationError(f"Invalid {', '.join(invalid)} format", details=invalid)


class JobService:
    def __init__(self, store: FileStore, uploads_dir: Path):
        self.store = store
        self.uploads_dir = Path(uploads_dir)

    def create_job(
        self,
        template: str,
        domain: str,
        email: str,
        phone: str,
        address: str,
        logo_filename: Optional[str],
        logo_file: Optional[BinaryIO],
    ) -> Job:
        """Validate a deployment submission, store its logo and write the job record"""
        validate_submission({
            "template": template,
            "domain": domain,
            "email": email,
            "phone": phone,
            "address": address,
            "logo": logo_filename if logo_file is not None else None,
        })

        job_id = str(uuid.uuid4())
        logo_name = f"{job_id}-logo{Path(logo_filename).suffix.lower()}"
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        with open(self.uploads_dir / logo_name, "wb") as out:
            shutil.copyfileobj(logo_file, out)

        job = Job(
            id=job_id,
            template=template.strip(),
            domain=domain.strip().lower(),
            email=email.strip(),
            phone=phone.strip(),
            address=address.strip(),
            logo=logo_name,
            status=JobStatus.CREATED,
            timestamp=utc_now(),
        )
        self.store.insert(job.id, job.to_record())
        logger.info(f"Created job {job.id} for {job.domain} (template {job.template})")
        return job

    def get_job(self, job_id: str) -> Job:
        return Job.model_validate(self.store.get(job_id))

    def list_jobs(self) -> List[JobSummary]:
        jobs = [JobSummary.model_validate(record) for record in self.store.list_all()]
        return sorted(jobs, key=lambda j: j.timestamp, reverse=True)

    def delete_job(self, job_id: str) -> None:
        """Delete the job record and its logo; a logo already gone is ignored."""
        job = self.get_job(job_id)
        if process_registry.is_active(job_id):
            raise JobBusyError("Job has an active deployment run")
        self.store.delete(job_id)
        if job.logo:
            try:
                (self.uploads_dir / job.logo).unlink()
            except FileNotFoundError:
                pass
        logger.info(f"Deleted job {job_id}")

    # -- status transitions (used by the orchestrator only) --

    def _transition(self, job: Job, target: JobStatus) -> None:
        if not can_transition(job.status, target):
            raise InvalidStateError(
                f"Cannot move job from '{job.status.value}' to '{target.value}'",
                details={"jobId": job.id, "status": job.status.value},
            )
        job.status = target

    def _save(self, job: Job) -> Job:
        self.store.update(job.id, job.to_record())
        return job

    def mark_uploading(self, job: Job, credential_id: str) -> Job:
        self._transition(job, JobStatus.UPLOADING)
        job.credential_id = credential_id
        if job.upload_started_at is None:
            job.upload_started_at = utc_now()
        return self._save(job)

    def record_database(
        self,
        job: Job,
        db_name: str,
        db_user: str,
        db_pass: str,
        instructions: Optional[DbInstructions] = None,
    ) -> Job:
        job.db_name = db_name
        job.db_user = db_user
        job.db_pass = db_pass
        job.manual_db_setup = instructions is not None
        job.db_instructions = instructions
        if instructions is not None:
            self._transition(job, JobStatus.WAITING_FOR_DB)
        return self._save(job)

    def mark_uploaded(self, job: Job) -> Job:
        self._transition(job, JobStatus.UPLOADED)
        if job.upload_completed_at is None:
            job.upload_completed_at = utc_now()
        return self._save(job)

    def mark_failed(self, job: Job, error: str) -> Job:
        self._transition(job, JobStatus.FAILED)
        job.error = error
        if job.failed_at is None:
            job.failed_at = utc_now()
        return self._save(job)
