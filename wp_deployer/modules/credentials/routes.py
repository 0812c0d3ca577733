import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse

from wp_deployer.config import settings
from wp_deployer.core.dependencies import get_credential_service, get_notifier
from wp_deployer.modules.credentials.schemas import (
    CredentialDeleteResponse, CredentialListResponse, CredentialValidationResponse,
    SaveCredentialsRequest, SaveCredentialsResponse, ValidateCredentialsRequest
)
from wp_deployer.modules.credentials.service import CredentialService
from wp_deployer.modules.deployments.notifier import ProgressLog, ProgressNotifier, stream_run

router = APIRouter(tags=["credentials"])


@router.post("/validate-credentials", response_model=CredentialValidationResponse)
def validate_credentials(
    request: ValidateCredentialsRequest,
    service: CredentialService = Depends(get_credential_service),
):
    """Validate cPanel credentials and check that FTP access can be derived."""
    check, ftp = service.validate(request.host, request.username, request.password, request.port)
    if not check.valid:
        body = CredentialValidationResponse(success=False, message="Invalid credentials", cpanel=check)
        return JSONResponse(status_code=400, content=body.model_dump(mode="json", by_alias=True, exclude_none=True))
    return CredentialValidationResponse(
        success=True, message="Credentials validated successfully", cpanel=check, ftp=ftp,
    )


@router.post("/validate-credentials-stream")
def validate_credentials_stream(
    request: ValidateCredentialsRequest,
    service: CredentialService = Depends(get_credential_service),
    notifier: ProgressNotifier = Depends(get_notifier),
):
    """Validate cPanel credentials, narrating each attempt as Server-Sent Events."""
    channel = f"validate-{uuid.uuid4()}"
    log = ProgressLog(channel, notifier)

    def work():
        log.start("Starting validation...")
        check, ftp = service.validate(request.host, request.username, request.password, request.port,
                                      log_callback=log)
        extra = {"cpanel": check.model_dump(mode="json", by_alias=True)}
        if not check.valid:
            return "error", "Invalid credentials", extra
        extra["ftp"] = ftp.model_dump(mode="json", by_alias=True) if ftp else None
        return "success", "Credentials validated successfully", extra

    frames = stream_run(notifier, channel, work, settings.stream_poll_seconds)
    return StreamingResponse(frames, media_type="text/event-stream", headers={"Cache-Control": "no-cache"})


@router.post("/save-credentials", response_model=SaveCredentialsResponse)
def save_credentials(
    request: SaveCredentialsRequest,
    service: CredentialService = Depends(get_credential_service),
):
    """Validate then persist a named credential"""
    credential = service.save(request.name, request.host, request.username, request.password, request.port)
    return SaveCredentialsResponse(
        message="Credentials saved successfully", credential_id=credential.id, name=credential.name,
    )


@router.get("/credentials", response_model=CredentialListResponse)
def list_credentials(service: CredentialService = Depends(get_credential_service)):
    """List saved credentials (without passwords)."""
    return CredentialListResponse(credentials=service.list_credentials())


@router.delete("/credentials/{credential_id}", response_model=CredentialDeleteResponse)
def delete_credential(credential_id: str, service: CredentialService = Depends(get_credential_service)):
    """Delete a saved credential"""
    service.delete(credential_id)
    return CredentialDeleteResponse(message="Credential deleted successfully", id=credential_id)
