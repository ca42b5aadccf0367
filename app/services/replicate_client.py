from typing import Any, Optional

import requests

from app.core.config import Settings, get_settings
from app.core.errors import ArtifactFetchError, ConfigurationError, ProtocolError, RemoteAPIError
from app.core.logging import configure_logging
from app.models import FetchedArtifact, JobHandle, OutputArtifact

logger = configure_logging("replicate")

_BODY_PREVIEW = 500


class ReplicateClient:
    """Blocking client for the Replicate predictions API and its output files."""

    def __init__(
        self,
        api_token: Optional[str] = None,
        *,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.api_token = (api_token or settings.replicate_api_token or "").strip()
        if not self.api_token:
            raise ConfigurationError("Missing REPLICATE_API_TOKEN in the environment.")

        self.api_base = (api_base or settings.replicate_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.session = session or requests.Session()

    # ------------------------------------------------------------------
    def create_prediction(self, version: str, job_input: dict[str, Any]) -> JobHandle:
        url = f"{self.api_base}/predictions"
        logger.info("Creating prediction (version=%s)", version)
        payload = self._request("POST", url, json={"version": version, "input": job_input})
        handle = JobHandle.from_payload(payload)
        logger.info("Prediction %s created with status %s", handle.id, handle.status.value)
        return handle

    def get_prediction(self, status_url: str) -> JobHandle:
        return JobHandle.from_payload(self._request("GET", status_url))

    def download(self, artifact: OutputArtifact) -> FetchedArtifact:
        """Fetch an output file without credentials; any non-2xx response is fatal."""
        try:
            response = self.session.get(artifact.source_url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ArtifactFetchError(
                artifact.source_url, f"Failed to download {artifact.suggested_name}: {exc}"
            ) from exc

        if not response.ok:
            raise ArtifactFetchError(
                artifact.source_url,
                f"Failed to download {artifact.suggested_name}: HTTP {response.status_code}",
                upstream_status=response.status_code,
            )

        content_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
        return FetchedArtifact(artifact=artifact, content=response.content, content_type=content_type)

    # ------------------------------------------------------------------
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("Job API request failed: %s %s (%s)", method, url, exc)
            raise RemoteAPIError(f"Job API unreachable: {exc}") from exc

        if not response.ok:
            body = response.text or ""
            logger.warning("Job API returned %s for %s %s", response.status_code, method, url)
            raise RemoteAPIError(
                f"Job API error: {response.status_code} {body[:_BODY_PREVIEW] or 'no details'}",
                status_code=response.status_code,
                body=body,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ProtocolError("Job API returned a non-JSON response.") from exc
