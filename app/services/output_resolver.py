from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Iterator, List, Tuple

from app.core.errors import ProtocolError
from app.models import OutputArtifact
from app.utils.file_utils import sanitize_filename, unique_name, url_basename

DEFAULT_HINT = "output"
DEFAULT_EXTENSION = ".wav"
ARCHIVE_EXTENSIONS = (".zip",)
ARCHIVE_CONTENT_TYPES = frozenset({"application/zip", "application/x-zip-compressed", "application/x-zip"})


def is_archive(name: str, content_type: str = "") -> bool:
    return name.lower().endswith(ARCHIVE_EXTENSIONS) or content_type.lower() in ARCHIVE_CONTENT_TYPES


def _walk(value: Any, hint: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(url, hint)`` for every string leaf, depth first."""
    if isinstance(value, str):
        if value.strip():
            yield value.strip(), hint
    elif isinstance(value, Mapping):
        for key, child in value.items():
            yield from _walk(child, sanitize_filename(str(key)) or hint)
    elif isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        for child in value:
            yield from _walk(child, hint)
    # numbers, booleans and None carry no artifact


def flatten_output(output: Any) -> List[OutputArtifact]:
    """Turn a job's raw output into an ordered list of artifacts with unique, flat names.

    The leaf name comes from the URL path; when nothing usable is left after
    sanitising, ``<hint>-<position><ext>`` is used, where ``hint`` is the
    closest mapping key and ``position`` the 1-based leaf ordinal.
    """
    artifacts: List[OutputArtifact] = []
    taken: set[str] = set()

    for position, (url, hint) in enumerate(_walk(output, DEFAULT_HINT), start=1):
        name = url_basename(url) or f"{hint}-{position}{DEFAULT_EXTENSION}"
        name = unique_name(name, taken)
        taken.add(name)
        artifacts.append(OutputArtifact(source_url=url, suggested_name=name))

    if not artifacts:
        raise ProtocolError("Job finished with no usable output.")
    return artifacts
