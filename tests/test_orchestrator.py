import json
import time

import pytest

from wp_deployer.config import settings
from wp_deployer.core.exceptions import ConnectorError
from wp_deployer.modules.deployments import process_registry
from wp_deployer.modules.deployments.process_registry import RunToken

REMOTE_FILES = {
    "/public_html/wordpress.zip",
    "/public_html/wp-content/themes/astra.zip",
    "/public_html/wp-content/plugins/all-in-one-wp-migration.zip",
    "/public_html/wp-content/plugins/all-in-one-wp-migration-unlimited-extension.zip",
    "/public_html/wp-config.php",
    "/public_html/install.php",
    "/public_html/job-info.json",
}


@pytest.fixture
def job(submit_job):
    return submit_job().json()["jobData"]


def get_job(client, job_id):
    return client.get(f"/jobs/{job_id}").json()["job"]


class TestStartUpload:
    def test_automatic_database_uploads_everything(self, client, connector, job, credential_id):
        response = client.post(f"/upload/{job['id']}", json={"credentialId": credential_id})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "uploaded"
        assert body["manualDbSetup"] is False
        assert body["credentialName"] == "Main account"
        assert body["nextStep"] == "Visit https://example.com/install.php to complete WordPress installation"

        assert set(connector.uploads) == REMOTE_FILES | {f"/public_html/wp-content/uploads/{job['logo']}"}
        assert "/public_html/wp-content/uploads" in connector.dirs

        stored = get_job(client, job["id"])
        assert stored["status"] == "uploaded"
        assert stored["credentialId"] == credential_id
        assert stored["dbName"] == "cpuser_wp_abc123"
        assert stored["uploadStartedAt"] and stored["uploadCompletedAt"]
        assert "error" not in stored or stored["error"] is None

        credential = client.get("/credentials").json()["credentials"][0]
        assert credential["lastUsed"] is not None

    def test_custom_template_replaces_theme(self, client, connector, submit_job, credential_id):
        settings.templates_path.mkdir(parents=True, exist_ok=True)
        (settings.templates_path / "acme-example-com-2024.wpress").write_bytes(b"wpress")
        job_id = submit_job(template="acme-example-com-2024").json()["jobId"]

        response = client.post(f"/upload/{job_id}", json={"credentialId": credential_id})

        assert response.status_code == 200
        assert "/public_html/template.wpress" in connector.uploads
        assert not any("/wp-content/themes/" in path for path in connector.uploads)

    def test_manual_database_pauses_then_resumes(self, client, connector, job, credential_id):
        connector.manual_db = True

        response = client.post(f"/upload/{job['id']}", json={"credentialId": credential_id})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "waiting-for-db"
        assert body["manualDbSetup"] is True
        assert body["dbInstructions"]["databaseName"] == "cpuser_wp_abc123"
        assert body["dbInstructions"]["cpanelUrl"] == "https://host.example.com:2083"
        assert connector.uploads == []
        assert get_job(client, job["id"])["status"] == "waiting-for-db"

        resumed = client.post(f"/api/resume-deploy/{job['id']}")

        assert resumed.status_code == 200
        assert resumed.json()["status"] == "uploaded"
        stored = get_job(client, job["id"])
        assert stored["status"] == "uploaded"
        assert stored["dbInstructions"]["databaseUser"] == "cpuser_wpuser_abc123"

    def test_missing_extension_archive_fails_job(self, client, connector, job, credential_id):
        (settings.plugins_path / settings.migration_extension_filename).unlink()

        response = client.post(f"/upload/{job['id']}", json={"credentialId": credential_id})

        assert response.status_code == 500
        assert response.json()["error"] == "Upload failed"
        assert "Unlimited Extension not found" in response.json()["details"]
        stored = get_job(client, job["id"])
        assert stored["status"] == "failed"
        assert "Unlimited Extension" in stored["error"]
        assert stored["failedAt"]
        assert connector.uploads == []

    def test_artifact_vanishing_mid_transfer_keeps_earlier_uploads(self, client, connector, job, credential_id):
        logo = settings.uploads_path / job["logo"]
        connector.on_upload = lambda remote_path: logo.unlink(missing_ok=True)

        response = client.post(f"/upload/{job['id']}", json={"credentialId": credential_id})

        assert response.status_code == 500
        stored = get_job(client, job["id"])
        assert stored["status"] == "failed"
        assert f"Logo: {job['logo']}" in stored["error"]
        assert "/public_html/wordpress.zip" in connector.uploads

    def test_ftp_failure_fails_job(self, client, connector, job, credential_id):
        connector.ftp_error = "Failed to get FTP credentials: cPanel returned HTTP 500"

        response = client.post(f"/upload/{job['id']}", json={"credentialId": credential_id})

        assert response.status_code == 500
        assert get_job(client, job["id"])["error"] == connector.ftp_error

    def test_unknown_credential(self, client, job):
        response = client.post(f"/upload/{job['id']}", json={"credentialId": "nope"})

        assert response.status_code == 404
        assert get_job(client, job["id"])["status"] == "created"

    def test_missing_credential_id(self, client, job):
        response = client.post(f"/upload/{job['id']}", json={})

        assert response.status_code == 400
        assert response.json()["details"] == ["credentialId"]

    def test_only_from_created(self, client, job, credential_id):
        client.post(f"/upload/{job['id']}", json={"credentialId": credential_id})

        again = client.post(f"/upload/{job['id']}", json={"credentialId": credential_id})

        assert again.status_code == 409
        assert get_job(client, job["id"])["status"] == "uploaded"

    def test_busy_job_refused(self, client, job, credential_id):
        with process_registry.claim(job["id"], 60):
            response = client.post(f"/upload/{job['id']}", json={"credentialId": credential_id})

        assert response.status_code == 409
        assert get_job(client, job["id"])["status"] == "created"


class TestResume:
    def test_resume_on_uploaded_is_invalid_state(self, client, job, credential_id):
        client.post(f"/upload/{job['id']}", json={"credentialId": credential_id})

        response = client.post(f"/api/resume-deploy/{job['id']}")

        assert response.status_code == 409
        assert response.json()["error"] == "Job is not waiting for DB setup."

    def test_resume_on_created_is_invalid_state(self, client, job):
        assert client.post(f"/api/resume-deploy/{job['id']}").status_code == 409


class TestCancellation:
    def test_cancel_between_transfers(self, client, connector, job, credential_id):
        connector.on_upload = lambda remote_path: process_registry.cancel(job["id"])

        response = client.post(f"/upload/{job['id']}", json={"credentialId": credential_id})

        assert response.status_code == 500
        assert response.json()["details"] == "Deployment cancelled"
        assert get_job(client, job["id"])["error"] == "Deployment cancelled"
        assert len(connector.uploads) == 1
        assert not process_registry.is_active(job["id"])

    def test_cancel_without_active_run(self, client, job):
        response = client.post(f"/upload/{job['id']}/cancel")

        assert response.status_code == 200
        assert response.json()["cancelled"] is False

    def test_deadline(self):
        token = RunToken("job-1", 5)
        token.deadline = time.monotonic() - 1

        with pytest.raises(ConnectorError, match="Deployment timed out after 5 seconds"):
            token.check()


class TestUploadStream:
    def test_stream_relays_progress_and_result(self, client, job, credential_id):
        response = client.post(f"/upload/{job['id']}/stream", json={"credentialId": credential_id})

        assert response.status_code == 200
        events = [
            json.loads(frame[len("data: "):])
            for frame in response.text.split("\n\n")
            if frame.startswith("data: ")
        ]
        assert events[0]["type"] == "start"
        assert any(event["type"] == "log" for event in events)
        assert events[-1]["type"] == "success"
        assert events[-1]["result"]["status"] == "uploaded"

    def test_unknown_job_is_plain_404(self, client, credential_id):
        response = client.post("/upload/missing/stream", json={"credentialId": credential_id})

        assert response.status_code == 404
