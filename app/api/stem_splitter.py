from fastapi import APIRouter, Depends, Response

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.models import StemSplitRequest
from app.services.job_proxy import ExternalJobProxy

router = APIRouter(prefix="/stem-splitter", tags=["Stem Splitter"])

logger = configure_logging("stem_splitter")


def get_job_proxy() -> ExternalJobProxy:
    # Built per request; raises ConfigurationError when the API token or model version is missing.
    return ExternalJobProxy.from_settings(get_settings())


@router.post("", summary="Split an audio file into stems and return them as one zip")
async def split_stems(
    payload: StemSplitRequest,
    proxy: ExternalJobProxy = Depends(get_job_proxy),
) -> Response:
    logger.info("Stem split requested for %s", payload.source_url)
    bundle = await proxy.run(payload.source_url)

    logger.info(
        "Stem split done: %s artifacts, %s bytes%s",
        bundle.artifact_count,
        len(bundle.content),
        " (archive passthrough)" if bundle.passthrough else "",
    )
    return Response(
        content=bundle.content,
        media_type=bundle.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{bundle.filename}"',
            "Cache-Control": "no-store",
        },
    )
