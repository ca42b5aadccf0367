from typing import Optional

import anyio
from fastapi import APIRouter, File, Response, UploadFile

from app.core.logging import configure_logging
from app.services.audio_service import AudioConversionService
from app.utils.file_utils import ensure_upload

router = APIRouter(tags=["MP3 Encoding"])

logger = configure_logging("encode")
audio_service = AudioConversionService()


async def _encode(upload: Optional[UploadFile], filename: str, *, no_store: bool = False) -> Response:
    upload = ensure_upload(upload)
    data = await anyio.to_thread.run_sync(audio_service.encode_upload, upload)

    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if no_store:
        headers["Cache-Control"] = "no-store"
    return Response(content=data, media_type="audio/mpeg", headers=headers)


@router.post("/encode-mp3", summary="Encode a mix-fix render to MP3")
async def encode_mp3(file: Optional[UploadFile] = File(None)) -> Response:
    return await _encode(file, "mix-fix.mp3")


@router.post("/ai-mastering-mp3", summary="Encode a mastered WAV to MP3")
async def ai_mastering_mp3(file: Optional[UploadFile] = File(None)) -> Response:
    return await _encode(file, "beets-master.mp3", no_store=True)
