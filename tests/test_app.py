from wp_deployer import __version__


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["version"] == __version__
    assert body["timestamp"]


def test_security_headers(client):
    response = client.get("/")

    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "DENY"


def test_startup_creates_data_dirs(client, data_dir):
    for name in ("jobs", "credentials", "uploads", "templates", "plugins"):
        assert (data_dir / name).is_dir()
