from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from fastapi import UploadFile

from app.core.config import Settings, get_settings
from app.core.errors import ConversionError, ValidationError
from app.core.logging import configure_logging
from app.services.bundler import build_zip
from app.storage.local import LocalStorage
from app.utils.file_utils import is_wav, safe_upload_name, unique_name
from app.utils.wav import SUPPORTED_SAMPLE_RATES, read_wav_sample_rate

logger = configure_logging("audio")

_STDERR_TAIL = 400


class BatchConversionError(ValidationError):
    """Every file in a conversion batch was rejected."""

    def __init__(self, details: List[str]) -> None:
        super().__init__("No file could be converted.")
        self.details = details


@dataclass
class BatchResult:
    archive: bytes
    converted: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


class AudioConversionService:
    """MP3 encoding through an external ffmpeg binary."""

    def __init__(self, storage: LocalStorage | None = None, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.storage = storage or LocalStorage()

    # ------------------------------------------------------------------
    def resolve_ffmpeg(self) -> str:
        configured = (self.settings.ffmpeg_binary or "").strip()
        if configured and Path(configured).is_file():
            return configured
        found = shutil.which("ffmpeg")
        if found:
            return found
        raise ConversionError("ffmpeg binary is missing. Check the converter deployment.")

    def ffmpeg_available(self) -> bool:
        try:
            self.resolve_ffmpeg()
        except ConversionError:
            return False
        return True

    def encode_mp3(self, input_path: Path, output_path: Path, sample_rate: Optional[int] = None) -> Path:
        cmd = [
            self.resolve_ffmpeg(),
            "-y", "-hide_banner", "-loglevel", "error",
            "-i", str(input_path),
            "-codec:a", "libmp3lame",
            "-b:a", self.settings.mp3_bitrate,
        ]
        if sample_rate:
            cmd += ["-ar", str(sample_rate)]
        cmd.append(str(output_path))

        proc = subprocess.run(cmd, capture_output=True, text=True)
        if proc.returncode != 0:
            err = (proc.stderr or proc.stdout or "").strip()[-_STDERR_TAIL:]
            logger.error("ffmpeg failed for %s: %s", input_path.name, err)
            raise ConversionError(f"MP3 conversion failed: {err or 'ffmpeg_failed'}")
        return output_path

    # ------------------------------------------------------------------
    def encode_upload(self, upload: UploadFile) -> bytes:
        """Encode a single uploaded file to MP3 and return the MP3 bytes."""
        suffix = Path(safe_upload_name(upload.filename, "input.wav")).suffix or ".wav"

        with self.storage.workspace("beets-encode") as ws:
            input_path = ws.input_path(f"input{suffix}")
            self.storage.save_upload(upload, input_path)
            output_path = self.encode_mp3(input_path, ws.output_path("output.mp3"))
            data = output_path.read_bytes()

        logger.info("Encoded %s to MP3 (%s bytes)", upload.filename, len(data))
        return data

    def convert_wav_batch(self, uploads: Sequence[UploadFile]) -> BatchResult:
        """
        Convert WAV uploads to MP3 and zip the results.

        Files with another extension or an unsupported sample rate are skipped
        and reported in ``errors``; the batch fails only when nothing converted.
        """
        if not uploads:
            raise ValidationError("No WAV file selected.")

        converted: List[str] = []
        errors: List[str] = []
        taken: set[str] = set()

        with self.storage.workspace("beets-konvertor") as ws:
            for upload in uploads:
                name = safe_upload_name(upload.filename, "audio.wav")
                if not is_wav(name):
                    errors.append(f"{name}: unsupported format")
                    continue
                name = unique_name(name, taken)
                taken.add(name)

                input_path = ws.input_path(name)
                data = self.storage.save_upload(upload, input_path)
                sample_rate = read_wav_sample_rate(data)
                if sample_rate and sample_rate not in SUPPORTED_SAMPLE_RATES:
                    errors.append(f"{name}: only 44.1/48 kHz is supported")
                    continue

                output_name = f"{input_path.stem}.mp3"
                self.encode_mp3(input_path, ws.output_path(output_name), sample_rate)
                converted.append(output_name)

            if not converted:
                raise BatchConversionError(errors)

            archive = build_zip(
                ((path.name, path.read_bytes()) for path in ws.outputs()),
                compresslevel=self.settings.bundle_compression_level,
            )

        logger.info("Converted %s WAV files to MP3 (%s skipped)", len(converted), len(errors))
        return BatchResult(archive=archive, converted=converted, errors=errors)
