import struct
from typing import Optional

SUPPORTED_SAMPLE_RATES = (44100, 48000)


def read_wav_sample_rate(data: bytes) -> Optional[int]:
    """
    Read the sample rate from a RIFF/WAVE header by walking the chunk list
    until the ``fmt `` chunk is found.

    Returns None when the buffer is too short or no complete ``fmt `` chunk exists.
    """
    if len(data) < 32:
        return None

    offset = 12
    while offset + 8 <= len(data):
        chunk_id = data[offset:offset + 4]
        (chunk_size,) = struct.unpack_from("<I", data, offset + 4)
        if chunk_id == b"fmt ":
            if offset + 8 + 16 <= len(data):
                (sample_rate,) = struct.unpack_from("<I", data, offset + 12)
                return sample_rate
            return None
        # chunks are word aligned
        offset += 8 + chunk_size + (chunk_size % 2)

    return None
