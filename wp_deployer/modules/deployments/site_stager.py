import json
import re
import shutil
import secrets
import zipfile
import tempfile
import logging
import posixpath
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from wp_deployer.config import settings
from wp_deployer.core.exceptions import ArtifactMissingError, ConnectorError
from wp_deployer.modules.jobs.schemas import Job
from wp_deployer.modules.templates.service import TemplateRegistry
from wp_deployer.modules.templates.wordpress_org import ArtifactSource

logger = logging.getLogger(__name__)

WP_CONFIG_SAMPLE = "wordpress/wp-config-sample.php"
DB_HOST = "localhost"
SALT_KEYS = (
    "AUTH_KEY", "SECURE_AUTH_KEY", "LOGGED_IN_KEY", "NONCE_KEY",
    "AUTH_SALT", "SECURE_AUTH_SALT", "LOGGED_IN_SALT", "NONCE_SALT",
)


@dataclass(frozen=True)
class StagedFile:
    label: str
    local_path: Path
    remote_path: str

    @property
    def remote_dir(self) -> str:
        return posixpath.dirname(self.remote_path)

    def verify(self) -> None:
        if not self.local_path.is_file():
            raise ArtifactMissingError(self.label, self.local_path)


def render_wp_config(sample: str, db_name: str, db_user: str, db_pass: str, db_host: str = DB_HOST) -> str:
    """Fill the database placeholders and replace every salt define with a fresh random value."""
    config = sample.replace("database_name_here", db_name, 1)
    config = config.replace("username_here", db_user, 1)
    config = config.replace("password_here", db_pass, 1)
    config = config.replace("localhost", db_host, 1)
    for key in SALT_KEYS:
        salt = secrets.token_hex(64)
        config = re.sub(
            rf"define\(\s*'{key}',\s*'[^']*'\s*\);",
            f"define( '{key}', '{salt}' );",
            config,
        )
    return config


class SiteStager:
    """Gathers every file the remote installer needs for one job into a scratch directory."""

    def __init__(self, templates: TemplateRegistry, artifacts: ArtifactSource):
        self.templates = templates
        self.artifacts = artifacts

    @contextmanager
    def stage(self, job: Job, log_callback: Optional[Callable[[str], None]] = None) -> Iterator[List[StagedFile]]:
        """
        Yield the staged file list for job, removing the scratch directory on exit.

        Args:
            job: Job with database credentials already recorded
            log_callback: Optional callback receiving progress lines

        Raises:
            ArtifactMissingError: a required local file does not exist
            ConnectorError: a download from WordPress.org failed
        """
        log = log_callback or logger.info
        if not (job.db_name and job.db_user and job.db_pass):
            raise ConnectorError("Missing database credentials for upload")

        work_dir = Path(tempfile.mkdtemp(prefix=f"deploy-{job.id}-"))
        logger.info(f"Created work directory: {work_dir}")
        try:
            yield self._collect(job, work_dir, log)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)
            logger.info(f"Cleaned up work directory: {work_dir}")

    def _collect(self, job: Job, work_dir: Path, log: Callable[[str], None]) -> List[StagedFile]:
        root = settings.remote_root.rstrip("/")
        files: List[StagedFile] = []

        version = self.artifacts.latest_core_version()
        log(f"Downloading WordPress {version}...")
        core_zip = self.artifacts.download_core(version, work_dir)
        files.append(StagedFile("WordPress core ZIP file", core_zip, f"{root}/wordpress.zip"))

        resolved = self.templates.resolve(job.template)
        if resolved.is_custom:
            log(f"Using custom template: {job.template}.wpress")
            files.append(StagedFile(f"Template: {job.template} (custom)", Path(resolved.custom_path),
                                    f"{root}/template.wpress"))
        else:
            log(f"Downloading WordPress.org theme: {resolved.theme_slug}")
            theme_zip = self.artifacts.download_theme(resolved.theme_slug, work_dir)
            files.append(StagedFile(f"Template: {job.template} (wordpress)", theme_zip,
                                    f"{root}/wp-content/themes/{resolved.theme_slug}.zip"))

        plugin_slug = settings.migration_plugin_slug
        log(f"Downloading plugin {plugin_slug}...")
        plugin_zip = self.artifacts.download_plugin(plugin_slug, work_dir)
        files.append(StagedFile("All-in-One WP Migration plugin", plugin_zip,
                                f"{root}/wp-content/plugins/{plugin_slug}.zip"))

        extension = settings.migration_extension_filename
        files.append(StagedFile("Unlimited Extension", settings.plugins_path / extension,
                                f"{root}/wp-content/plugins/{extension}"))

        files.append(StagedFile(f"Logo: {job.logo}", settings.uploads_path / job.logo,
                                f"{root}/wp-content/uploads/{job.logo}"))

        wp_config = work_dir / f"wp-config-{job.id}.php"
        wp_config.write_text(render_wp_config(self._read_config_sample(core_zip), job.db_name, job.db_user,
                                              job.db_pass))
        log("Generated wp-config.php")
        files.append(StagedFile("wp-config.php", wp_config, f"{root}/wp-config.php"))

        files.append(StagedFile("Install script", Path(settings.installer_script_path), f"{root}/install.php"))

        job_info = work_dir / f"job-info-{job.id}.json"
        job_info.write_text(json.dumps(job.job_info(), indent=2))
        files.append(StagedFile("job-info.json", job_info, f"{root}/job-info.json"))

        for staged in files:
            staged.verify()
        return files

    @staticmethod
    def _read_config_sample(core_zip: Path) -> str:
        try:
            with zipfile.ZipFile(core_zip) as archive:
                return archive.read(WP_CONFIG_SAMPLE).decode("utf-8")
        except (zipfile.BadZipFile, KeyError) as e:
            raise ConnectorError(f"Could not read {WP_CONFIG_SAMPLE} from WordPress core archive: {e}")
