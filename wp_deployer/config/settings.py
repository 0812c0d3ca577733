from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Storage (one JSON file per record; logos, templates and plugin archives on disk)
    data_dir: Path = Path("data")
    jobs_dir: Optional[Path] = None
    credentials_dir: Optional[Path] = None
    uploads_dir: Optional[Path] = None
    templates_dir: Optional[Path] = None
    plugins_dir: Optional[Path] = None
    installer_path: Optional[Path] = None  # Defaults to the bundled assets/install.php

    # cPanel
    cpanel_default_port: int = 2083
    validation_timeout: float = 8.0
    api_timeout: float = 10.0
    verify_ssl: bool = False  # Shared hosts frequently serve self-signed certificates on 2083

    # FTP
    ftp_port: int = 21
    ftp_timeout: float = 60.0
    ftp_passive: bool = True
    remote_root: str = "/public_html"

    # WordPress.org
    download_timeout: float = 120.0
    wordpress_fallback_version: str = "6.4.3"
    theme_catalog_size: int = 10
    migration_plugin_slug: str = "all-in-one-wp-migration"
    migration_extension_filename: str = "all-in-one-wp-migration-unlimited-extension.zip"

    # Orchestration
    deployment_timeout_seconds: float = 1800.0
    stream_poll_seconds: float = 15.0

    # App
    app_name: str = "wp-deployer"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "*"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    rate_limit_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def jobs_path(self) -> Path:
        return self.jobs_dir or self.data_dir / "jobs"

    @property
    def credentials_path(self) -> Path:
        return self.credentials_dir or self.data_dir / "credentials"

    @property
    def uploads_path(self) -> Path:
        return self.uploads_dir or self.data_dir / "uploads"

    @property
    def templates_path(self) -> Path:
        return self.templates_dir or self.data_dir / "templates"

    @property
    def plugins_path(self) -> Path:
        return self.plugins_dir or self.data_dir / "plugins"

    @property
    def installer_script_path(self) -> Path:
        return self.installer_path or Path(__file__).resolve().parent.parent / "assets" / "install.php"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
