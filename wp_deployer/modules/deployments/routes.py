from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from wp_deployer.config import settings
from wp_deployer.core.dependencies import get_notifier, get_orchestrator
from wp_deployer.modules.deployments.notifier import ProgressLog, ProgressNotifier, stream_run
from wp_deployer.modules.deployments.orchestrator import DeploymentOrchestrator
from wp_deployer.modules.deployments.schemas import CancelResponse, UploadRequest, UploadResult

router = APIRouter(tags=["deployments"])

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


@router.post("/upload/{job_id}", response_model=UploadResult)
def upload(
    job_id: str,
    request: UploadRequest,
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
):
    """Provision the database and upload the site for a job using a saved credential."""
    return orchestrator.start_upload(job_id, request.credential_id)


@router.post("/upload/{job_id}/stream")
def upload_stream(
    job_id: str,
    request: UploadRequest,
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
    notifier: ProgressNotifier = Depends(get_notifier),
):
    """
    Same as POST /upload/{job_id}, narrated as Server-Sent Events.
    Lookup and state errors are returned as plain HTTP errors before the stream opens.
    """
    orchestrator.prepare_upload(job_id, request.credential_id)
    log = ProgressLog(job_id, notifier)

    def work():
        result = orchestrator.start_upload(job_id, request.credential_id, log=log)
        return "success", result.message, {"result": result.model_dump(mode="json", by_alias=True)}

    frames = stream_run(notifier, job_id, work, settings.stream_poll_seconds)
    return StreamingResponse(frames, media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/upload/{job_id}/cancel", response_model=CancelResponse)
def cancel_upload(job_id: str, orchestrator: DeploymentOrchestrator = Depends(get_orchestrator)):
    """Request cancellation of the active run for a job"""
    cancelled = orchestrator.cancel(job_id)
    message = "Cancellation requested" if cancelled else "No active deployment run for this job"
    return CancelResponse(job_id=job_id, cancelled=cancelled, message=message)


@router.post("/api/resume-deploy/{job_id}", response_model=UploadResult)
def resume_deploy(job_id: str, orchestrator: DeploymentOrchestrator = Depends(get_orchestrator)):
    """Resume a deployment paused for manual database setup."""
    return orchestrator.resume(job_id)
