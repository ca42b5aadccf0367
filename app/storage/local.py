import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Optional

from fastapi import UploadFile

from app.core.config import get_settings
from app.core.errors import ValidationError


class Workspace:
    """Scratch directory owned by a single request (``input/`` and ``output/``)."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.input_dir = root / "input"
        self.output_dir = root / "output"
        for directory in (self.input_dir, self.output_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def input_path(self, name: str) -> Path:
        return self.input_dir / name

    def output_path(self, name: str) -> Path:
        return self.output_dir / name

    def outputs(self) -> list[Path]:
        return sorted(path for path in self.output_dir.iterdir() if path.is_file())


class LocalStorage:
    """Local scratch storage for uploads and ffmpeg outputs."""

    def __init__(self, base_dir: Optional[Path] = None, max_upload_bytes: Optional[int] = None) -> None:
        settings = get_settings()
        self.temp_dir = Path(base_dir or settings.temp_dir)
        self.max_upload_bytes = max_upload_bytes or settings.max_upload_bytes
        self.temp_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def workspace(self, prefix: str) -> Iterator[Workspace]:
        root = Path(tempfile.mkdtemp(prefix=f"{prefix}-", dir=self.temp_dir))
        try:
            yield Workspace(root)
        finally:
            shutil.rmtree(root, ignore_errors=True)

    def save_upload(self, upload: UploadFile, target: Path) -> bytes:
        """Copy the upload to ``target`` and return its bytes."""
        upload.file.seek(0)
        data = self._read_limited(upload.file, upload.filename or target.name)
        target.write_bytes(data)
        upload.file.seek(0)
        return data

    def _read_limited(self, stream: IO[bytes], label: str) -> bytes:
        data = stream.read(self.max_upload_bytes + 1)
        if len(data) > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes // (1024 * 1024)
            raise ValidationError(f"{label}: file is too large (max {limit_mb} MB).", status_code=413)
        return data
