import shutil
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List, Optional

import httpx

from wp_deployer.config import settings
from wp_deployer.core.exceptions import ConnectorError, NotFoundError, ValidationError
from wp_deployer.modules.templates.schemas import ResolvedTemplate, TemplateEntry
from wp_deployer.modules.templates.wordpress_org import ArtifactSource

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".wpress"
ON_DEMAND = "Downloaded on demand"

FALLBACK_THEMES = (
    TemplateEntry(
        id="twentytwentyfour",
        name="Twenty Twenty-Four",
        type="wordpress",
        description="Designed to be flexible, versatile and applicable to any website.",
        version="1.0",
        rating=4.8,
        num_ratings=1000,
        last_updated="2024-01-01",
        homepage="https://wordpress.org/themes/twentytwentyfour/",
        screenshot_url="https://s.w.org/style/images/about/WordPress-logos-standard.png",
        download_url="https://downloads.wordpress.org/theme/twentytwentyfour.latest-stable.zip",
        size_formatted=ON_DEMAND,
    ),
    TemplateEntry(
        id="astra",
        name="Astra",
        type="wordpress",
        description="Fast, fully customizable & beautiful theme suitable for blogs, personal portfolios "
                    "and business websites.",
        version="4.0",
        rating=4.9,
        num_ratings=5000,
        last_updated="2024-01-01",
        homepage="https://wordpress.org/themes/astra/",
        screenshot_url="https://s.w.org/style/images/about/WordPress-logos-standard.png",
        download_url="https://downloads.wordpress.org/theme/astra.latest-stable.zip",
        size_formatted=ON_DEMAND,
    ),
)


def format_bytes(size: int, decimals: int = 2) -> str:
    if size <= 0:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB", "TB")
    i = 0
    while size >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    value = f"{size / 1024 ** i:.{max(decimals, 0)}f}"
    if "." in value:
        value = value.rstrip("0").rstrip(".")
    return f"{value} {units[i]}"


def friendly_name(stem: str) -> str:
    """winmill-equipment-com-20250615-015039 -> winmill.equipment.com"""
    parts = stem.split("-")
    if len(parts) >= 3:
        return ".".join(parts[:3])
    return stem


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class TemplateRegistry:
    def __init__(self, templates_dir: Path, artifacts: ArtifactSource):
        self.templates_dir = Path(templates_dir)
        self.artifacts = artifacts

    def _custom_path(self, template_id: str) -> Path:
        if not template_id or Path(template_id).name != template_id or template_id.startswith("."):
            raise NotFoundError("Template not found")
        return self.templates_dir / f"{template_id}{TEMPLATE_SUFFIX}"

    def _custom_entry(self, path: Path) -> TemplateEntry:
        stat = path.stat()
        name = friendly_name(path.stem)
        return TemplateEntry(
            id=path.stem,
            name=name,
            type="custom",
            filename=path.name,
            size=stat.st_size,
            size_formatted=format_bytes(stat.st_size),
            created_at=_iso(stat.st_ctime),
            modified_at=_iso(stat.st_mtime),
            description=f"Custom template: {name}",
        )

    def list_custom(self) -> List[TemplateEntry]:
        if not self.templates_dir.exists():
            return []
        return [self._custom_entry(p) for p in self.templates_dir.glob(f"*{TEMPLATE_SUFFIX}") if p.is_file()]

    def list_themes(self) -> List[TemplateEntry]:
        try:
            themes = self.artifacts.query_themes(settings.theme_catalog_size)
        except (httpx.HTTPError, ValueError, ConnectorError) as e:
            logger.error(f"Error fetching themes from WordPress.org: {e}")
            return list(FALLBACK_THEMES)
        return [
            TemplateEntry(
                id=theme["slug"],
                name=theme.get("name") or theme["slug"],
                type="wordpress",
                description=theme.get("description"),
                version=theme.get("version"),
                rating=theme.get("rating"),
                num_ratings=theme.get("num_ratings"),
                last_updated=theme.get("last_updated"),
                homepage=theme.get("homepage"),
                screenshot_url=theme.get("screenshot_url"),
                download_url=theme.get("download_url"),
                size_formatted=ON_DEMAND,
            )
            for theme in themes
            if theme.get("slug")
        ]

    def list_templates(self) -> List[TemplateEntry]:
        """Custom uploads first, then the WordPress.org catalog, each group by name."""
        templates = self.list_custom() + self.list_themes()
        return sorted(templates, key=lambda t: (t.type != "custom", t.name.lower()))

    def save_template(self, filename: Optional[str], file: BinaryIO) -> TemplateEntry:
        if not filename:
            raise ValidationError("No template file uploaded", details=["template"])
        name = Path(filename).name
        if not name.endswith(TEMPLATE_SUFFIX) or name == TEMPLATE_SUFFIX:
            raise ValidationError("Only .wpress files are allowed for custom templates", details=["template"])
        self.templates_dir.mkdir(parents=True, exist_ok=True)
        path = self.templates_dir / name
        with open(path, "wb") as out:
            shutil.copyfileobj(file, out)
        logger.info(f"Saved custom template {name}")
        entry = self._custom_entry(path)
        entry.name = path.stem
        return entry

    def delete_template(self, template_id: str) -> None:
        path = self._custom_path(template_id)
        if not path.is_file():
            raise NotFoundError("Template not found")
        path.unlink()
        logger.info(f"Deleted custom template {template_id}")

    def resolve(self, template_id: str) -> ResolvedTemplate:
        """A custom archive with this id wins over a WordPress.org theme slug."""
        try:
            path = self._custom_path(template_id)
        except NotFoundError:
            path = None
        if path is not None and path.is_file():
            return ResolvedTemplate(template_id=template_id, custom_path=str(path))
        return ResolvedTemplate(template_id=template_id, theme_slug=template_id)
