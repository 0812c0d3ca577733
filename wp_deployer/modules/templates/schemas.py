from typing import List, Literal, Optional

from wp_deployer.core.schemas import CamelModel


class TemplateEntry(CamelModel):
    id: str
    name: str
    type: Literal["custom", "wordpress"]
    description: Optional[str] = None
    size_formatted: Optional[str] = None

    # custom
    filename: Optional[str] = None
    size: Optional[int] = None
    created_at: Optional[str] = None
    modified_at: Optional[str] = None

    # wordpress
    version: Optional[str] = None
    rating: Optional[float] = None
    num_ratings: Optional[int] = None
    last_updated: Optional[str] = None
    homepage: Optional[str] = None
    screenshot_url: Optional[str] = None
    download_url: Optional[str] = None


class TemplateListResponse(CamelModel):
    templates: List[TemplateEntry]


class TemplateUploadResponse(CamelModel):
    success: bool = True
    message: str
    template: TemplateEntry


class TemplateDeleteResponse(CamelModel):
    success: bool = True
    message: str
    template_id: str


class ResolvedTemplate(CamelModel):
    """What the stager uploads for a job's template: a custom archive or a theme slug."""
    template_id: str
    custom_path: Optional[str] = None
    theme_slug: Optional[str] = None

    @property
    def is_custom(self) -> bool:
        return self.custom_path is not None
