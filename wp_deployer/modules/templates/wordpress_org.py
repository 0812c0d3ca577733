"""
WordPress.org artifact source.

Resolves and downloads the WordPress core archive, themes and plugins from the
public WordPress.org APIs, and queries the theme catalog for template listing.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from wp_deployer.config import settings
from wp_deployer.core.exceptions import ConnectorError

logger = logging.getLogger(__name__)

VERSION_CHECK_URL = "https://api.wordpress.org/core/version-check/1.7/"
CORE_DOWNLOAD_URL = "https://wordpress.org/wordpress-{version}.zip"
PLUGIN_INFO_URL = "https://api.wordpress.org/plugins/info/1.0/{slug}.json"
THEMES_API_URL = "https://api.wordpress.org/themes/info/1.1/"

THEME_FIELDS = (
    "name", "slug", "version", "download_url", "description", "rating", "num_ratings",
    "last_updated", "homepage", "requires", "requires_php", "screenshot_url",
)


class ArtifactSource:
    """Where the stager gets WordPress core, themes and plugins from."""

    def latest_core_version(self) -> str:
        raise NotImplementedError

    def download_core(self, version: str, dest_dir: Path) -> Path:
        raise NotImplementedError

    def download_theme(self, slug: str, dest_dir: Path) -> Path:
        raise NotImplementedError

    def download_plugin(self, slug: str, dest_dir: Path) -> Path:
        raise NotImplementedError

    def query_themes(self, per_page: int) -> List[Dict[str, Any]]:
        raise NotImplementedError


class WordPressOrgClient(ArtifactSource):
    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.BaseTransport] = None):
        self.timeout = timeout or settings.download_timeout
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, follow_redirects=True, transport=self.transport)

    def latest_core_version(self) -> str:
        try:
            with self._client() as client:
                response = client.get(VERSION_CHECK_URL)
                response.raise_for_status()
                return response.json()["offers"][0]["version"]
        except (httpx.HTTPError, ValueError, KeyError, IndexError) as e:
            fallback = settings.wordpress_fallback_version
            logger.warning(f"Could not fetch latest WordPress version ({e}), using {fallback}")
            return fallback

    def download_core(self, version: str, dest_dir: Path) -> Path:
        url = CORE_DOWNLOAD_URL.format(version=version)
        return self._download(url, Path(dest_dir) / f"wordpress-{version}.zip")

    def download_theme(self, slug: str, dest_dir: Path) -> Path:
        params = {"action": "theme_information", "request[slug]": slug}
        info = self._get_json(THEMES_API_URL, params=params, what=f"theme {slug}")
        link = info.get("download_link") if isinstance(info, dict) else None
        if not link:
            raise ConnectorError(f"Theme {slug} not found or no download link available")
        return self._download(link, Path(dest_dir) / f"{slug}.zip")

    def download_plugin(self, slug: str, dest_dir: Path) -> Path:
        info = self._get_json(PLUGIN_INFO_URL.format(slug=slug), what=f"plugin {slug}")
        link = info.get("download_link") if isinstance(info, dict) else None
        if not link:
            raise ConnectorError(f"Plugin {slug} not found or no download link available")
        return self._download(link, Path(dest_dir) / f"{slug}.zip")

    def query_themes(self, per_page: int) -> List[Dict[str, Any]]:
        payload = {
            "action": "query_themes",
            "request": {"per_page": per_page, "fields": {name: True for name in THEME_FIELDS}},
        }
        with self._client() as client:
            response = client.post(THEMES_API_URL, json=payload)
            response.raise_for_status()
            data = response.json()
        return data.get("themes") or []

    def _get_json(self, url: str, what: str, params: Optional[Dict[str, str]] = None) -> Any:
        try:
            with self._client() as client:
                response = client.get(url, params=params)
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ConnectorError(f"Failed to look up {what} on WordPress.org: {e}")

    def _download(self, url: str, target: Path) -> Path:
        logger.info(f"Downloading {url}")
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._client() as client, client.stream("GET", url) as response:
                response.raise_for_status()
                with open(target, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            target.unlink(missing_ok=True)
            raise ConnectorError(f"Download failed for {url}: {e}")
        logger.info(f"Downloaded {target.name} ({target.stat().st_size} bytes)")
        return target
