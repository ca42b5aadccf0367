import os
import struct
import tempfile

# Keep scratch directories out of the working tree; must run before app imports.
os.environ.setdefault("STORAGE_DIR", tempfile.mkdtemp(prefix="beets-tests-"))

import pytest

from app.core.errors import ArtifactFetchError
from app.models import FetchedArtifact, JobHandle
from app.services.job_proxy import ExternalJobProxy

STATUS_URL = "https://api.replicate.test/v1/predictions/job-1"


def job_payload(status, output=None, *, job_id="job-1", status_url=STATUS_URL, error=None):
    payload = {"id": job_id, "status": status, "output": output, "error": error}
    if status_url:
        payload["urls"] = {"get": status_url}
    return payload


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is awaited."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeJobClient:
    """Stands in for ReplicateClient; replays scripted payloads and files."""

    def __init__(self, submitted, polls=(), files=None):
        self.submitted = submitted
        self.poll_payloads = list(polls)
        self.files = files or {}
        self.created = []
        self.polled = []
        self.downloaded = []

    def create_prediction(self, version, job_input):
        self.created.append((version, job_input))
        if isinstance(self.submitted, Exception):
            raise self.submitted
        return JobHandle.from_payload(self.submitted)

    def get_prediction(self, status_url):
        self.polled.append(status_url)
        # the last scripted payload repeats forever
        payload = self.poll_payloads.pop(0) if len(self.poll_payloads) > 1 else self.poll_payloads[0]
        return JobHandle.from_payload(payload)

    def download(self, artifact):
        self.downloaded.append(artifact.source_url)
        status, content, content_type = self.files.get(artifact.source_url, (404, b"", ""))
        if status >= 400:
            raise ArtifactFetchError(
                artifact.source_url,
                f"Failed to download {artifact.suggested_name}: HTTP {status}",
                upstream_status=status,
            )
        return FetchedArtifact(artifact=artifact, content=content, content_type=content_type)


def wav_header(sample_rate=44100, extra_chunk=b""):
    fmt = struct.pack("<HHIIHH", 1, 2, sample_rate, sample_rate * 4, 4, 16)
    data = b"\x00" * 16
    body = (
        b"WAVE"
        + extra_chunk
        + b"fmt " + struct.pack("<I", len(fmt)) + fmt
        + b"data" + struct.pack("<I", len(data)) + data
    )
    return b"RIFF" + struct.pack("<I", len(body)) + body


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_client():
    return FakeJobClient


@pytest.fixture
def make_proxy(clock):
    def factory(client, **options):
        options.setdefault("clock", clock)
        options.setdefault("sleep", clock.sleep)
        return ExternalJobProxy(client, "model-version-1", **options)

    return factory


@pytest.fixture
def payload():
    return job_payload


@pytest.fixture
def wav():
    return wav_header
