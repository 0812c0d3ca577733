from fastapi import APIRouter, Depends, File, UploadFile

from wp_deployer.core.dependencies import get_template_registry
from wp_deployer.modules.templates.schemas import (
    TemplateDeleteResponse, TemplateListResponse, TemplateUploadResponse
)
from wp_deployer.modules.templates.service import TemplateRegistry

router = APIRouter(tags=["templates"])


@router.get("/templates", response_model=TemplateListResponse)
def list_templates(registry: TemplateRegistry = Depends(get_template_registry)):
    """List custom templates and the WordPress.org theme catalog."""
    return TemplateListResponse(templates=registry.list_templates())


@router.post("/upload-template", response_model=TemplateUploadResponse)
def upload_template(
    template: UploadFile = File(...),
    registry: TemplateRegistry = Depends(get_template_registry),
):
    """Upload a custom template. Only .wpress archives are accepted."""
    entry = registry.save_template(template.filename, template.file)
    return TemplateUploadResponse(message="Custom template uploaded successfully!", template=entry)


@router.delete("/templates/{template_id}", response_model=TemplateDeleteResponse)
def delete_template(template_id: str, registry: TemplateRegistry = Depends(get_template_registry)):
    """Delete a custom template"""
    registry.delete_template(template_id)
    return TemplateDeleteResponse(message="Template deleted successfully", template_id=template_id)
