import httpx
import pytest

from wp_deployer.config import settings
from wp_deployer.core.exceptions import ConnectorError
from wp_deployer.modules.templates.service import TemplateRegistry, format_bytes, friendly_name
from wp_deployer.modules.templates.wordpress_org import WordPressOrgClient


@pytest.fixture
def custom_template(data_dir):
    settings.templates_path.mkdir(parents=True, exist_ok=True)
    path = settings.templates_path / "winmill-equipment-com-20250615-015039.wpress"
    path.write_bytes(b"x" * 1536)
    return path


class TestListTemplates:
    def test_custom_first_then_catalog(self, client, custom_template):
        templates = client.get("/templates").json()["templates"]

        assert [t["id"] for t in templates] == ["winmill-equipment-com-20250615-015039", "astra", "blocksy"]
        custom = templates[0]
        assert custom["type"] == "custom"
        assert custom["name"] == "winmill.equipment.com"
        assert custom["filename"] == custom_template.name
        assert custom["size"] == 1536
        assert custom["sizeFormatted"] == "1.5 KB"
        assert all(t["sizeFormatted"] == "Downloaded on demand" for t in templates[1:])
        assert templates[1]["numRatings"] == 5000

    def test_catalog_outage_uses_fallback(self, client, artifacts):
        artifacts.catalog_error = httpx.ConnectError("no route to host")

        response = client.get("/templates")

        assert response.status_code == 200
        ids = [t["id"] for t in response.json()["templates"]]
        assert set(ids) == {"twentytwentyfour", "astra"}


class TestUploadTemplate:
    def test_rejects_other_extensions(self, client):
        response = client.post("/upload-template", files={"template": ("site.zip", b"zip", "application/zip")})

        assert response.status_code == 400
        assert response.json()["error"] == "Only .wpress files are allowed for custom templates"
        assert not settings.templates_path.exists() or not any(settings.templates_path.iterdir())

    def test_upload_then_delete(self, client):
        response = client.post(
            "/upload-template",
            files={"template": ("acme-shop-net-2024.wpress", b"archive", "application/octet-stream")},
        )

        assert response.status_code == 200
        entry = response.json()["template"]
        assert entry["id"] == "acme-shop-net-2024"
        assert entry["type"] == "custom"
        assert (settings.templates_path / "acme-shop-net-2024.wpress").read_bytes() == b"archive"

        deleted = client.delete("/templates/acme-shop-net-2024")
        assert deleted.status_code == 200
        assert deleted.json()["templateId"] == "acme-shop-net-2024"
        assert client.delete("/templates/acme-shop-net-2024").status_code == 404

    def test_missing_file(self, client):
        assert client.post("/upload-template").status_code == 400


class TestResolve:
    def test_custom_archive_wins(self, custom_template, artifacts):
        registry = TemplateRegistry(settings.templates_path, artifacts)

        resolved = registry.resolve(custom_template.stem)

        assert resolved.is_custom
        assert resolved.custom_path == str(custom_template)

    def test_anything_else_is_a_theme_slug(self, data_dir, artifacts):
        registry = TemplateRegistry(settings.templates_path, artifacts)

        resolved = registry.resolve("astra")

        assert not resolved.is_custom
        assert resolved.theme_slug == "astra"

    def test_path_like_id_is_not_custom(self, data_dir, artifacts):
        registry = TemplateRegistry(settings.templates_path, artifacts)

        assert not registry.resolve("../secrets").is_custom


@pytest.mark.parametrize("size,expected", [
    (0, "0 Bytes"),
    (500, "500 Bytes"),
    (1024, "1 KB"),
    (1536, "1.5 KB"),
    (5 * 1024 * 1024, "5 MB"),
])
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected


def test_friendly_name_short_stem():
    assert friendly_name("mysite") == "mysite"


class TestWordPressOrgClient:
    def test_latest_version(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"offers": [{"version": "6.5.2"}]}))

        assert WordPressOrgClient(transport=transport).latest_core_version() == "6.5.2"

    def test_latest_version_falls_back(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))

        version = WordPressOrgClient(transport=transport).latest_core_version()

        assert version == settings.wordpress_fallback_version

    def test_plugin_download(self, tmp_path):
        def handler(request):
            if request.url.host == "api.wordpress.org":
                return httpx.Response(200, json={"download_link": "https://downloads.wordpress.org/plugin/x.zip"})
            return httpx.Response(200, content=b"PK archive")

        client = WordPressOrgClient(transport=httpx.MockTransport(handler))

        path = client.download_plugin("all-in-one-wp-migration", tmp_path)

        assert path == tmp_path / "all-in-one-wp-migration.zip"
        assert path.read_bytes() == b"PK archive"

    def test_unknown_theme(self, tmp_path):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"error": "Theme not found"}))

        with pytest.raises(ConnectorError, match="Theme nope not found"):
            WordPressOrgClient(transport=transport).download_theme("nope", tmp_path)

    def test_failed_download_leaves_no_partial_file(self, tmp_path):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))

        with pytest.raises(ConnectorError, match="Download failed"):
            WordPressOrgClient(transport=transport).download_core("6.5", tmp_path)
        assert not (tmp_path / "wordpress-6.5.zip").exists()
