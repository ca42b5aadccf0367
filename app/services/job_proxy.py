from __future__ import annotations

import time
from typing import Awaitable, Callable, Optional

import anyio

from app.core.config import Settings, get_settings
from app.core.errors import ConfigurationError, JobFailedError, JobTimeoutError, ProtocolError
from app.core.logging import configure_logging
from app.models import JobHandle, JobStatus, ResultBundle
from app.services.bundler import build_zip, fetch_all
from app.services.output_resolver import flatten_output, is_archive
from app.services.replicate_client import ReplicateClient
from app.utils.file_utils import ensure_absolute_url

logger = configure_logging("job_proxy")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

BUNDLE_FILENAME = "stems.zip"


class ExternalJobProxy:
    """
    Run one remote job to completion and hand back a single zip bundle.

    Flow: submit -> poll at a fixed interval until a terminal status or the
    deadline -> flatten the output into artifacts -> fetch them all -> zip.
    Each call owns its own handle; nothing is shared between requests.
    """

    def __init__(
        self,
        client: ReplicateClient,
        job_type: str,
        *,
        input_key: str = "audio",
        poll_interval: float = 3.0,
        timeout: float = 120.0,
        compresslevel: int = 9,
        max_concurrent_fetches: int = 4,
        clock: Clock = time.monotonic,
        sleep: Sleep = anyio.sleep,
    ) -> None:
        if not job_type:
            raise ConfigurationError("Missing REPLICATE_STEM_SPLITTER_VERSION in the environment.")
        self.client = client
        self.job_type = job_type
        self.input_key = input_key
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.compresslevel = compresslevel
        self.max_concurrent_fetches = max_concurrent_fetches
        self.clock = clock
        self.sleep = sleep

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "ExternalJobProxy":
        settings = settings or get_settings()
        job_type = (settings.replicate_stem_splitter_version or "").strip()
        options = dict(
            input_key=settings.stem_splitter_input_key,
            poll_interval=settings.poll_interval_seconds,
            timeout=settings.poll_timeout_seconds,
            compresslevel=settings.bundle_compression_level,
            max_concurrent_fetches=settings.max_concurrent_fetches,
        )
        options.update(overrides)
        return cls(ReplicateClient(settings=settings), job_type, **options)

    # ------------------------------------------------------------------
    async def run(self, source_url: str) -> ResultBundle:
        source_url = ensure_absolute_url(source_url)

        handle = await self.submit(source_url)
        handle = await self.wait_for_completion(handle)

        if handle.status is not JobStatus.succeeded:
            logger.warning("Job %s ended as %s: %s", handle.id, handle.status.value, handle.error)
            raise JobFailedError(f"Job {handle.status.value}: {handle.error or 'no details'}")

        return await self.collect(handle.output)

    async def submit(self, source_url: str) -> JobHandle:
        return await anyio.to_thread.run_sync(
            self.client.create_prediction, self.job_type, {self.input_key: source_url}
        )

    async def wait_for_completion(self, handle: JobHandle) -> JobHandle:
        """Poll sequentially until ``handle`` is terminal; bounded by ``self.timeout``.

        The deadline is checked between polls and also enforced as a wall-clock
        cancel scope, so a stalled poll cannot hold the caller past it.
        """
        started = self.clock()
        polls = 0

        with anyio.move_on_after(self.timeout) as deadline:
            while not handle.status.is_terminal:
                elapsed = self.clock() - started
                if elapsed > self.timeout:
                    logger.warning("Job %s timed out after %.1fs (%s polls)", handle.id, elapsed, polls)
                    raise JobTimeoutError(f"Job did not finish within {self.timeout:g} seconds.")
                if not handle.status_url:
                    raise ProtocolError(f"Job {handle.id} is {handle.status.value} but has no status URL.")

                await self.sleep(self.poll_interval)
                handle = await anyio.to_thread.run_sync(
                    self.client.get_prediction, handle.status_url, abandon_on_cancel=True
                )
                polls += 1

        if deadline.cancelled_caught:
            logger.warning("Job %s hit the %gs deadline during a poll (%s polls)", handle.id, self.timeout, polls)
            raise JobTimeoutError(f"Job did not finish within {self.timeout:g} seconds.")

        logger.info("Job %s reached %s after %s polls", handle.id, handle.status.value, polls)
        return handle

    async def collect(self, output) -> ResultBundle:
        artifacts = flatten_output(output)
        limiter = anyio.CapacityLimiter(self.max_concurrent_fetches)
        fetched = await fetch_all(self.client.download, artifacts, limiter=limiter)

        if isinstance(output, str):
            single = fetched[0]
            if is_archive(single.artifact.suggested_name, single.content_type):
                logger.info("Output is already an archive, returning it as is")
                return ResultBundle(
                    content=single.content,
                    filename=BUNDLE_FILENAME,
                    passthrough=True,
                    artifact_count=1,
                )

        content = build_zip(
            ((item.artifact.suggested_name, item.content) for item in fetched),
            compresslevel=self.compresslevel,
        )
        logger.info("Bundled %s artifacts (%s bytes)", len(fetched), len(content))
        return ResultBundle(content=content, filename=BUNDLE_FILENAME, artifact_count=len(fetched))
