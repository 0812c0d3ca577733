"""
Deployment orchestration for one job.

start_upload:  created -> uploading -> (waiting-for-db | uploaded), failed on any step error
resume:        waiting-for-db -> uploaded, failed on any step error

Every run holds the job's claim in process_registry for its whole duration, so
a second run, or deleting the job, is refused while it is active. The run's
token is checked between steps and between file transfers.
"""
import logging
from typing import Optional, Tuple

from wp_deployer.config import settings
from wp_deployer.core.exceptions import ConnectorError, DeployerError, InvalidStateError
from wp_deployer.modules.credentials.schemas import Credential
from wp_deployer.modules.credentials.service import CredentialService
from wp_deployer.modules.deployments import process_registry
from wp_deployer.modules.deployments.notifier import ProgressLog, ProgressNotifier
from wp_deployer.modules.deployments.process_registry import RunToken
from wp_deployer.modules.deployments.schemas import UploadResult
from wp_deployer.modules.deployments.site_stager import SiteStager
from wp_deployer.modules.hosting.connector import HostingConnector
from wp_deployer.modules.hosting.schemas import HostingAccount
from wp_deployer.modules.jobs.models import JobStatus
from wp_deployer.modules.jobs.schemas import Job
from wp_deployer.modules.jobs.service import JobService
from wp_deployer.modules.templates.service import TemplateRegistry
from wp_deployer.modules.templates.wordpress_org import ArtifactSource

logger = logging.getLogger(__name__)


def install_step(domain: str) -> str:
    return f"Visit https://{domain}/install.php to complete WordPress installation"


def manual_db_step(domain: str) -> str:
    return (
        "Please create the database manually in cPanel, then resume the deployment and visit "
        f"https://{domain}/install.php to complete WordPress installation"
    )


class DeploymentOrchestrator:
    def __init__(
        self,
        jobs: JobService,
        credentials: CredentialService,
        templates: TemplateRegistry,
        connector: HostingConnector,
        artifacts: ArtifactSource,
        notifier: Optional[ProgressNotifier] = None,
    ):
        self.jobs = jobs
        self.credentials = credentials
        self.connector = connector
        self.notifier = notifier
        self.stager = SiteStager(templates, artifacts)
        self.timeout_seconds = settings.deployment_timeout_seconds

    def _log(self, job_id: str, log: Optional[ProgressLog]) -> ProgressLog:
        return log or ProgressLog(job_id, self.notifier, logger)

    @staticmethod
    def _require_status(job: Job, expected: JobStatus, message: str) -> None:
        if job.status != expected:
            raise InvalidStateError(message, details={"jobId": job.id, "status": job.status.value})

    def prepare_upload(self, job_id: str, credential_id: str) -> Tuple[Job, Credential]:
        """Resolve and check the job and credential without claiming the job."""
        job = self.jobs.get_job(job_id)
        credential = self.credentials.get(credential_id)
        self._require_status(job, JobStatus.CREATED, f"Job cannot be uploaded from status '{job.status.value}'")
        if process_registry.is_active(job_id):
            raise process_registry.busy_error(job_id)
        return job, credential

    def prepare_resume(self, job_id: str) -> Tuple[Job, Credential]:
        job = self.jobs.get_job(job_id)
        self._require_status(job, JobStatus.WAITING_FOR_DB, "Job is not waiting for DB setup.")
        if not job.credential_id:
            raise InvalidStateError("Job has no credential recorded", details={"jobId": job.id})
        credential = self.credentials.get(job.credential_id)
        if process_registry.is_active(job_id):
            raise process_registry.busy_error(job_id)
        return job, credential

    def start_upload(self, job_id: str, credential_id: str, log: Optional[ProgressLog] = None) -> UploadResult:
        """
        Provision the database and upload the site for a created job.

        Returns the paused result with dbInstructions when the database has to be
        created by hand; resume() continues from there.

        Raises:
            NotFoundError: unknown job or credential
            InvalidStateError: job is not in status created
            JobBusyError: another run holds the job
            ConnectorError: a step failed; the job is left failed with the message
        """
        job, credential = self.prepare_upload(job_id, credential_id)
        log = self._log(job_id, log)

        with process_registry.claim(job_id, self.timeout_seconds) as token:
            job = self.jobs.get_job(job_id)
            self._require_status(job, JobStatus.CREATED, f"Job cannot be uploaded from status '{job.status.value}'")
            self.jobs.mark_uploading(job, credential.id)
            log.start(f"Starting upload for job {job_id} using credentials: {credential.name}")

            try:
                account = self.credentials.account(credential)
                token.check()
                db = self.connector.create_database(account, job.domain, log_callback=log)
                token.check()
                if db.manual:
                    self.jobs.record_database(job, db.db_name, db.db_user, db.db_pass, instructions=db.instructions)
                    log.info("Manual database setup required; deployment paused")
                    return UploadResult(
                        message="Manual database setup required",
                        job_id=job.id,
                        domain=job.domain,
                        credential_name=credential.name,
                        status=job.status,
                        manual_db_setup=True,
                        db_instructions=db.instructions,
                        next_step=manual_db_step(job.domain),
                    )
                self.jobs.record_database(job, db.db_name, db.db_user, db.db_pass)
                log.info(f"MySQL database and user created: {db.db_name} / {db.db_user}")

                self._transfer(job, account, token, log)
                self.jobs.mark_uploaded(job)
            except Exception as e:
                self._fail(job, e, log)

        self._touch(credential.id)
        log.info(f"Upload completed for {job.domain}")
        return UploadResult(
            message="Files uploaded successfully!",
            job_id=job.id,
            domain=job.domain,
            credential_name=credential.name,
            status=job.status,
            next_step=install_step(job.domain),
        )

    def resume(self, job_id: str, log: Optional[ProgressLog] = None) -> UploadResult:
        """Continue a waiting-for-db job from the FTP step with its stored database credentials."""
        job, credential = self.prepare_resume(job_id)
        log = self._log(job_id, log)

        with process_registry.claim(job_id, self.timeout_seconds) as token:
            job = self.jobs.get_job(job_id)
            self._require_status(job, JobStatus.WAITING_FOR_DB, "Job is not waiting for DB setup.")
            log.start(f"Resuming deployment for job {job_id} after manual DB setup")
            try:
                self._transfer(job, self.credentials.account(credential), token, log)
                self.jobs.mark_uploaded(job)
            except Exception as e:
                self._fail(job, e, log)

        self._touch(credential.id)
        return UploadResult(
            message="Files uploaded successfully after manual DB setup!",
            job_id=job.id,
            domain=job.domain,
            credential_name=credential.name,
            status=job.status,
            manual_db_setup=job.manual_db_setup,
            db_instructions=job.db_instructions,
            next_step=install_step(job.domain),
        )

    def cancel(self, job_id: str) -> bool:
        """Ask the active run for job_id to stop at its next check. False when nothing is running."""
        self.jobs.get_job(job_id)
        return process_registry.cancel(job_id)

    def _transfer(self, job: Job, account: HostingAccount, token: RunToken, log: ProgressLog) -> None:
        token.check()
        ftp = self.connector.get_ftp_credentials(account, log_callback=log)
        token.check()
        with self.stager.stage(job, log_callback=log) as files:
            token.check()
            log.info(f"Connecting to FTP: {ftp.host}")
            with self.connector.open_transfer(ftp) as transfer:
                for remote_dir in sorted({staged.remote_dir for staged in files}):
                    transfer.ensure_dir(remote_dir)
                for staged in files:
                    token.check()
                    staged.verify()
                    log(f"Uploading {staged.label} -> {staged.remote_path}")
                    transfer.upload(staged.local_path, staged.remote_path)
        log.info("All files uploaded successfully!")

    def _fail(self, job: Job, error: Exception, log: ProgressLog) -> None:
        """Record the failure on the job and re-raise it as a ConnectorError for the caller."""
        message = error.message if isinstance(error, DeployerError) else str(error)
        if not isinstance(error, DeployerError):
            logger.exception(f"Unexpected error during deployment of job {job.id}")
        try:
            self.jobs.mark_failed(job, message)
        except DeployerError as update_error:
            logger.error(f"Failed to update job status: {update_error}")
        log.error(f"Upload failed: {message}")
        raise ConnectorError("Upload failed", details=message) from error

    def _touch(self, credential_id: str) -> None:
        try:
            self.credentials.touch_last_used(credential_id)
        except DeployerError as e:
            logger.warning(f"Could not update lastUsed for credential {credential_id}: {e}")
