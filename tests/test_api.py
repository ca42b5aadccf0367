import io
import zipfile

import pytest
from fastapi.testclient import TestClient

from app.api import stem_splitter
from app.api.stem_splitter import get_job_proxy
from app.core.config import Settings
from app.core.errors import RemoteAPIError
from app.main import app

SOURCE = "https://cdn.beets.test/uploads/track.wav"


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def use_proxy(make_proxy):
    def install(fake_client, **options):
        proxy = make_proxy(fake_client, **options)
        app.dependency_overrides[get_job_proxy] = lambda: proxy
        return proxy

    return install


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert isinstance(response.json()["ffmpeg_ok"], bool)


def test_cors_allows_any_origin_by_default(client):
    response = client.get("/health", headers={"Origin": "https://beets.test"})

    assert response.headers["access-control-allow-origin"] == "*"
    assert "content-disposition" in response.headers["access-control-expose-headers"].lower()


def test_stem_split_returns_zip_attachment(client, use_proxy, make_client, payload):
    fake = make_client(
        payload("starting"),
        polls=[payload("succeeded", {"vocals": "https://x.test/a.wav", "drums": "https://x.test/b.wav"})],
        files={
            "https://x.test/a.wav": (200, b"aaa", "audio/wav"),
            "https://x.test/b.wav": (200, b"bbb", "audio/wav"),
        },
    )
    use_proxy(fake)

    response = client.post("/stem-splitter", json={"source_url": SOURCE})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert response.headers["content-disposition"] == 'attachment; filename="stems.zip"'
    assert response.headers["cache-control"] == "no-store"
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert archive.namelist() == ["a.wav", "b.wav"]


def test_stem_split_timeout_is_504(client, use_proxy, make_client, payload):
    use_proxy(make_client(payload("starting"), polls=[payload("processing")]))

    response = client.post("/stem-splitter", json={"source_url": SOURCE})

    assert response.status_code == 504
    assert "error" in response.json()


def test_stem_split_proxies_remote_status(client, use_proxy, make_client):
    use_proxy(make_client(RemoteAPIError("Job API error: 429 slow down", status_code=429, body="slow down")))

    response = client.post("/stem-splitter", json={"source_url": SOURCE})

    assert response.status_code == 429
    assert response.json() == {"error": "Job API error: 429 slow down"}


def test_stem_split_artifact_failure_is_502(client, use_proxy, make_client, payload):
    use_proxy(make_client(payload("succeeded", ["https://x.test/gone.wav"])))

    response = client.post("/stem-splitter", json={"source_url": SOURCE})

    assert response.status_code == 502
    assert "gone.wav" in response.json()["error"]


def test_stem_split_empty_output_is_500(client, use_proxy, make_client, payload):
    use_proxy(make_client(payload("succeeded", {})))

    response = client.post("/stem-splitter", json={"source_url": SOURCE})

    assert response.status_code == 500
    assert "no usable output" in response.json()["error"]


@pytest.mark.parametrize("body", [{}, {"source_url": "track.wav"}, {"source_url": ""}])
def test_stem_split_bad_input_is_400(client, use_proxy, make_client, payload, body):
    fake = make_client(payload("starting"))
    use_proxy(fake)

    response = client.post("/stem-splitter", json=body)

    assert response.status_code == 400
    assert set(response.json()) == {"error"}
    assert fake.created == []


def test_stem_split_missing_configuration_is_500(client, monkeypatch):
    settings = Settings(replicate_api_token=None, replicate_stem_splitter_version=None)
    monkeypatch.setattr(stem_splitter, "get_settings", lambda: settings)

    response = client.post("/stem-splitter", json={"source_url": SOURCE})

    assert response.status_code == 500
    assert "REPLICATE_API_TOKEN" in response.json()["error"]
