import os
import zipfile

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from wp_deployer.config import settings
from wp_deployer.core.dependencies import get_artifact_source
from wp_deployer.core.exceptions import ConnectorError
from wp_deployer.database.file_store import StoreRegistry
from wp_deployer.main import app
from wp_deployer.modules.hosting.connector import HostingConnector, clean_host, get_hosting_connector
from wp_deployer.modules.hosting.ftp_transfer import FileTransfer
from wp_deployer.modules.hosting.schemas import (
    CredentialCheck, DatabaseProvisioning, DbInstructions, FtpCredentials
)
from wp_deployer.modules.templates.wordpress_org import ArtifactSource

WP_CONFIG_SAMPLE = """<?php
define( 'DB_NAME', 'database_name_here' );
define( 'DB_USER', 'username_here' );
define( 'DB_PASSWORD', 'password_here' );
define( 'DB_HOST', 'localhost' );

define( 'AUTH_KEY',         'put your unique phrase here' );
define( 'SECURE_AUTH_KEY',  'put your unique phrase here' );
define( 'LOGGED_IN_KEY',    'put your unique phrase here' );
define( 'NONCE_KEY',        'put your unique phrase here' );
define( 'AUTH_SALT',        'put your unique phrase here' );
define( 'SECURE_AUTH_SALT', 'put your unique phrase here' );
define( 'LOGGED_IN_SALT',   'put your unique phrase here' );
define( 'NONCE_SALT',       'put your unique phrase here' );
"""


class FakeTransfer(FileTransfer):
    def __init__(self, connector: "FakeConnector"):
        self.connector = connector

    def ensure_dir(self, remote_dir):
        self.connector.dirs.append(remote_dir)

    def upload(self, local_path, remote_path):
        self.connector.uploads.append(remote_path)
        if self.connector.on_upload is not None:
            self.connector.on_upload(remote_path)


class FakeConnector(HostingConnector):
    """In-process stand-in for a cPanel account."""

    def __init__(self):
        self.valid = True
        self.manual_db = False
        self.ftp_error = None
        self.uploads = []
        self.dirs = []
        self.on_upload = None

    def validate(self, host, username, password, port=None, log_callback=None):
        host = clean_host(host)
        if log_callback:
            log_callback(f"Validating cPanel credentials for {host}")
        if not self.valid:
            return CredentialCheck(valid=False, message="Invalid username or password", host=host,
                                   username=username, port=port or 2083)
        return CredentialCheck(valid=True, message="cPanel credentials are valid", host=host,
                               username=username, port=port or 2083, profile="generic")

    def get_ftp_credentials(self, account, log_callback=None):
        if self.ftp_error:
            raise ConnectorError(self.ftp_error)
        return FtpCredentials(host=account.host, user=account.username, password=account.password)

    def create_database(self, account, domain, log_callback=None):
        db_name = f"{account.username}_wp_abc123"
        db_user = f"{account.username}_wpuser_abc123"
        if self.manual_db:
            instructions = DbInstructions(
                cpanel_url=f"https://{account.host}:{account.port}",
                database_name=db_name,
                database_user=db_user,
                database_password="Str0ng!Password#1",
                domain=domain,
            )
            return DatabaseProvisioning(db_name=db_name, db_user=db_user, db_pass="Str0ng!Password#1",
                                        manual=True, instructions=instructions)
        return DatabaseProvisioning(db_name=db_name, db_user=db_user, db_pass="Str0ng!Password#1")

    def open_transfer(self, ftp_credentials):
        return FakeTransfer(self)


def write_zip(path, entries):
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return path


class FakeArtifacts(ArtifactSource):
    def __init__(self):
        self.themes = [
            {"slug": "astra", "name": "Astra", "version": "4.6", "rating": 98, "num_ratings": 5000},
            {"slug": "blocksy", "name": "Blocksy", "version": "2.0"},
        ]
        self.catalog_error = None

    def latest_core_version(self):
        return "6.5"

    def download_core(self, version, dest_dir):
        return write_zip(dest_dir / f"wordpress-{version}.zip", {"wordpress/wp-config-sample.php": WP_CONFIG_SAMPLE})

    def download_theme(self, slug, dest_dir):
        return write_zip(dest_dir / f"{slug}.zip", {f"{slug}/style.css": "/* theme */"})

    def download_plugin(self, slug, dest_dir):
        return write_zip(dest_dir / f"{slug}.zip", {f"{slug}/{slug}.php": "<?php"})

    def query_themes(self, per_page):
        if self.catalog_error is not None:
            raise self.catalog_error
        return self.themes[:per_page]


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "data_dir", tmp_path)
    StoreRegistry.reset()
    settings.plugins_path.mkdir(parents=True, exist_ok=True)
    write_zip(settings.plugins_path / settings.migration_extension_filename, {"extension/extension.php": "<?php"})
    yield tmp_path
    StoreRegistry.reset()


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def artifacts():
    return FakeArtifacts()


@pytest.fixture
def client(data_dir, connector, artifacts):
    app.dependency_overrides[get_hosting_connector] = lambda: connector
    app.dependency_overrides[get_artifact_source] = lambda: artifacts
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def submit_job(client):
    def submit(**overrides):
        form = {
            "template": "astra",
            "domain": "example.com",
            "email": "owner@example.com",
            "phone": "+1 555 0100",
            "address": "1 Main St",
        }
        form.update(overrides)
        files = {"logo": ("logo.png", b"\x89PNG fake", "image/png")}
        return client.post("/deploy", data=form, files=files)

    return submit


@pytest.fixture
def credential_id(client):
    response = client.post("/save-credentials", json={
        "name": "Main account",
        "host": "https://host.example.com",
        "username": "cpuser",
        "password": "secret",
    })
    assert response.status_code == 200
    return response.json()["credentialId"]
