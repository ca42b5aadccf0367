import time
from typing import List, Optional

import anyio
from fastapi import APIRouter, File, Response, UploadFile

from app.core.logging import configure_logging
from app.services.audio_service import AudioConversionService

router = APIRouter(prefix="/konvertor", tags=["WAV to MP3"])

logger = configure_logging("konvertor")
audio_service = AudioConversionService()


@router.post("", summary="Convert WAV files to 320 kbps MP3 and return them zipped")
async def convert_wav_files(files: Optional[List[UploadFile]] = File(None)) -> Response:
    uploads = [upload for upload in (files or []) if (upload.filename or "").strip()]
    result = await anyio.to_thread.run_sync(audio_service.convert_wav_batch, uploads)

    if result.errors:
        logger.info("Konvertor skipped files: %s", "; ".join(result.errors))

    zip_name = f"beets-konvertor-{int(time.time() * 1000)}.zip"
    return Response(
        content=result.archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{zip_name}"'},
    )
