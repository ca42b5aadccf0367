import re
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlparse

from fastapi import UploadFile

from app.core.errors import ValidationError

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(value: str) -> str:
    """Collapse every run of characters outside ``[A-Za-z0-9._-]`` into ``_``.

    Idempotent: the output only contains allowed characters.
    """
    return _UNSAFE_CHARS.sub("_", value or "")


def unique_name(name: str, taken: set[str]) -> str:
    """``name`` if unused, else ``stem-2.ext``, ``stem-3.ext``, ..."""
    if name not in taken:
        return name
    path = PurePosixPath(name)
    stem, suffix = path.stem, path.suffix
    counter = 2
    while f"{stem}-{counter}{suffix}" in taken:
        counter += 1
    return f"{stem}-{counter}{suffix}"


def safe_upload_name(filename: Optional[str], default: str) -> str:
    """Sanitised basename of an uploaded file, never a bare dot-name."""
    base = PurePosixPath((filename or "").replace("\\", "/")).name
    name = sanitize_filename(base)
    if name.strip(".") == "":
        return default
    return name


def url_basename(url: str) -> str:
    """Last segment of the URL path, percent-decoded and sanitised."""
    path = unquote(urlparse(url).path or "")
    name = sanitize_filename(PurePosixPath(path).name)
    if name.strip(".") == "":
        return ""
    return name


def ensure_absolute_url(reference: Optional[str]) -> str:
    """Return the reference stripped, or raise ``ValidationError`` if it is not an absolute http(s) URL."""
    value = (reference or "").strip()
    if not value:
        raise ValidationError("Missing source_url.")

    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValidationError("source_url must be an absolute http(s) URL.")
    return value


def ensure_upload(upload: Optional[UploadFile], *, label: str = "audio file") -> UploadFile:
    if upload is None or not (upload.filename or "").strip():
        raise ValidationError(f"Missing {label}.")
    return upload


def is_wav(filename: str) -> bool:
    return Path(filename).suffix.lower() == ".wav"
