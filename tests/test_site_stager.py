import json
import re

import pytest

from wp_deployer.config import settings
from wp_deployer.core.exceptions import ConnectorError
from wp_deployer.modules.deployments.site_stager import SALT_KEYS, SiteStager, render_wp_config
from wp_deployer.modules.jobs.schemas import Job
from wp_deployer.modules.templates.service import TemplateRegistry

WP_CONFIG_SAMPLE = """<?php
define( 'DB_NAME', 'database_name_here' );
define( 'DB_USER', 'username_here' );
define( 'DB_PASSWORD', 'password_here' );
define( 'DB_HOST', 'localhost' );

""" + "".join(f"define( '{key}', 'put your unique phrase here' );\n" for key in SALT_KEYS)


def make_job(**overrides):
    fields = dict(
        id="job-1",
        template="astra",
        domain="example.com",
        email="owner@example.com",
        phone="+1 555 0100",
        address="1 Main St",
        logo="job-1-logo.png",
        timestamp="2024-01-01T00:00:00+00:00",
        db_name="cpuser_wp_abc123",
        db_user="cpuser_wpuser_abc123",
        db_pass="Str0ng!Password#1",
    )
    fields.update(overrides)
    return Job(**fields)


class TestRenderWpConfig:
    def test_placeholders_and_salts(self):
        config = render_wp_config(WP_CONFIG_SAMPLE, "db", "user", "p@ss")

        assert "define( 'DB_NAME', 'db' );" in config
        assert "define( 'DB_USER', 'user' );" in config
        assert "define( 'DB_PASSWORD', 'p@ss' );" in config
        assert "define( 'DB_HOST', 'localhost' );" in config
        assert "put your unique phrase here" not in config
        salts = re.findall(r"define\( '\w+(?:KEY|SALT)', '([0-9a-f]+)' \);", config)
        assert len(salts) == 8
        assert len(set(salts)) == 8

    def test_fresh_salts_each_time(self):
        assert render_wp_config(WP_CONFIG_SAMPLE, "db", "u", "p") != render_wp_config(WP_CONFIG_SAMPLE, "db", "u", "p")


class TestSiteStager:
    @pytest.fixture
    def stager(self, data_dir, artifacts):
        settings.uploads_path.mkdir(parents=True, exist_ok=True)
        (settings.uploads_path / "job-1-logo.png").write_bytes(b"png")
        return SiteStager(TemplateRegistry(settings.templates_path, artifacts), artifacts)

    def test_stages_installer_inputs_and_cleans_up(self, stager):
        with stager.stage(make_job()) as files:
            by_remote = {f.remote_path: f for f in files}
            work_dir = by_remote["/public_html/wp-config.php"].local_path.parent
            job_info = json.loads(by_remote["/public_html/job-info.json"].local_path.read_text())
            wp_config = by_remote["/public_html/wp-config.php"].local_path.read_text()
            installer = by_remote["/public_html/install.php"].local_path

        assert "/public_html/wp-content/themes/astra.zip" in by_remote
        assert "/public_html/wp-content/uploads/job-1-logo.png" in by_remote
        assert job_info["dbName"] == "cpuser_wp_abc123"
        assert job_info["title"] == "example.com"
        assert "'cpuser_wpuser_abc123'" in wp_config
        assert installer.name == "install.php"
        assert installer.exists()
        assert not work_dir.exists()

    def test_requires_database_credentials(self, stager):
        with pytest.raises(ConnectorError, match="Missing database credentials"):
            with stager.stage(make_job(db_pass=None)):
                pass

    def test_missing_logo(self, stager):
        (settings.uploads_path / "job-1-logo.png").unlink()

        with pytest.raises(ConnectorError, match="Logo: job-1-logo.png not found"):
            with stager.stage(make_job()):
                pass
