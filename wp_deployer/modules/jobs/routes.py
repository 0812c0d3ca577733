from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from wp_deployer.core.dependencies import get_job_service
from wp_deployer.modules.jobs.schemas import (
    JobCreateResponse, JobDeleteResponse, JobDetailResponse, JobListResponse
)
from wp_deployer.modules.jobs.service import JobService

router = APIRouter(tags=["jobs"])


@router.post("/deploy", response_model=JobCreateResponse)
def submit_deployment(
    template: Optional[str] = Form(None),
    domain: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    logo: Optional[UploadFile] = File(None),
    service: JobService = Depends(get_job_service),
):
    """
    Create a deployment job from the submission form.
    Every field is required; missing or malformed ones are reported together with a 400.
    """
    job = service.create_job(
        template=template or "",
        domain=domain or "",
        email=email or "",
        phone=phone or "",
        address=address or "",
        logo_filename=logo.filename if logo else None,
        logo_file=logo.file if logo else None,
    )
    return JobCreateResponse(
        message="Job created successfully",
        job_id=job.id,
        job_data=job,
        next_step="Select hosting credentials and start the upload",
    )


@router.get("/jobs", response_model=JobListResponse)
def list_jobs(service: JobService = Depends(get_job_service)):
    """List all jobs, newest first."""
    return JobListResponse(jobs=service.list_jobs())


@router.get("/jobs/{job_id}", response_model=JobDetailResponse)
def get_job(job_id: str, service: JobService = Depends(get_job_service)):
    """Get job by ID"""
    return JobDetailResponse(job=service.get_job(job_id))


@router.delete("/jobs/{job_id}", response_model=JobDeleteResponse)
def delete_job(job_id: str, service: JobService = Depends(get_job_service)):
    """Delete a job and its logo"""
    service.delete_job(job_id)
    return JobDeleteResponse(message="Job deleted successfully", job_id=job_id)
