import struct

import pytest

from app.core.errors import ValidationError
from app.utils.file_utils import ensure_absolute_url, safe_upload_name, sanitize_filename, unique_name, url_basename
from app.utils.wav import read_wav_sample_rate


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("vocals.wav", "vocals.wav"),
        ("lead vocals (final).wav", "lead_vocals_final_.wav"),
        ("a//b\\c", "a_b_c"),
        ("stem-01_drums.flac", "stem-01_drums.flac"),
        ("zvuková stopa.wav", "zvukov_stopa.wav"),
        ("", ""),
    ],
)
def test_sanitize_filename(raw, expected):
    assert sanitize_filename(raw) == expected


@pytest.mark.parametrize("raw", ["", "a b", "%%%", "x/../y", "mix (v2) [final]!.wav", "ščř", "...", "__"])
def test_sanitize_filename_is_idempotent(raw):
    once = sanitize_filename(raw)
    assert sanitize_filename(once) == once


def test_url_basename():
    assert url_basename("https://x.test/a/b/vocals.wav") == "vocals.wav"
    assert url_basename("https://x.test/a/b/") == "b"
    assert url_basename("https://x.test/") == ""
    assert url_basename("https://x.test/..") == ""


def test_safe_upload_name():
    assert safe_upload_name("C:\\Users\\me\\beat 1.wav", "audio.wav") == "beat_1.wav"
    assert safe_upload_name(None, "audio.wav") == "audio.wav"
    assert safe_upload_name("..", "audio.wav") == "audio.wav"


def test_unique_name():
    assert unique_name("vocals.wav", set()) == "vocals.wav"
    assert unique_name("vocals.wav", {"vocals.wav"}) == "vocals-2.wav"
    assert unique_name("vocals.wav", {"vocals.wav", "vocals-2.wav"}) == "vocals-3.wav"
    assert unique_name("stem", {"stem"}) == "stem-2"


def test_ensure_absolute_url():
    assert ensure_absolute_url("  https://cdn.test/a.wav ") == "https://cdn.test/a.wav"
    for bad in (None, "", "cdn.test/a.wav", "https://", "file:///tmp/a.wav"):
        with pytest.raises(ValidationError):
            ensure_absolute_url(bad)


def test_read_wav_sample_rate(wav):
    assert read_wav_sample_rate(wav(44100)) == 44100
    assert read_wav_sample_rate(wav(96000)) == 96000


def test_read_wav_sample_rate_skips_other_chunks(wav):
    # odd-sized chunk followed by its pad byte
    list_chunk = b"LIST" + struct.pack("<I", 3) + b"abc" + b"\x00"
    assert read_wav_sample_rate(wav(48000, extra_chunk=list_chunk)) == 48000


def test_read_wav_sample_rate_rejects_garbage(wav):
    assert read_wav_sample_rate(b"RIFF") is None
    assert read_wav_sample_rate(wav(44100)[:30]) is None
    assert read_wav_sample_rate(b"RIFF" + b"\x00" * 40) is None
