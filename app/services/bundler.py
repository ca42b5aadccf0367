from __future__ import annotations

import zipfile
from io import BytesIO
from pathlib import PurePosixPath
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import anyio

from app.core.errors import ArtifactFetchError, ServiceError
from app.core.logging import configure_logging
from app.models import FetchedArtifact, OutputArtifact

logger = configure_logging("bundler")

Downloader = Callable[[OutputArtifact], FetchedArtifact]


def build_zip(entries: Iterable[Tuple[str, bytes]], compresslevel: int = 9) -> bytes:
    """Pack ``(name, data)`` pairs into one flat, deflated zip archive held in memory."""
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=compresslevel) as archive:
        for name, data in entries:
            archive.writestr(PurePosixPath(name).name, data)
    return buffer.getvalue()


async def fetch_all(
    download: Downloader,
    artifacts: Sequence[OutputArtifact],
    limiter: Optional[anyio.CapacityLimiter] = None,
) -> List[FetchedArtifact]:
    """
    Fetch every artifact concurrently and return them in input order.

    All-or-nothing: the first failure cancels the outstanding fetches and is
    re-raised once the task group has unwound.
    """
    results: List[Optional[FetchedArtifact]] = [None] * len(artifacts)
    failure: List[ServiceError] = []

    async with anyio.create_task_group() as tg:

        async def runner(index: int, artifact: OutputArtifact) -> None:
            try:
                results[index] = await anyio.to_thread.run_sync(
                    download, artifact, limiter=limiter, abandon_on_cancel=True
                )
            except Exception as exc:
                if not isinstance(exc, ServiceError):
                    exc = ArtifactFetchError(
                        artifact.source_url, f"Failed to download {artifact.suggested_name}: {exc}"
                    )
                if not failure:
                    failure.append(exc)
                    logger.warning("Artifact fetch failed, cancelling the rest: %s", exc.message)
                tg.cancel_scope.cancel()

        for index, artifact in enumerate(artifacts):
            tg.start_soon(runner, index, artifact)

    if failure:
        raise failure[0]

    return [item for item in results if item is not None]
