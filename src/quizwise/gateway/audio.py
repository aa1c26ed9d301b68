"""Media encoding helpers: raw PCM to WAV and bytes to ``data:`` URIs."""

from __future__ import annotations

import base64
from io import BytesIO

from pydub import AudioSegment

__all__ = ["pcm_to_wav", "to_data_uri", "decode_data_uri"]


def pcm_to_wav(
    pcm: bytes,
    *,
    channels: int = 1,
    rate: int = 24000,
    sample_width: int = 2,
) -> bytes:
    """Wrap little-endian PCM samples in a WAV container.

    The speech endpoint streams 24 kHz, 16-bit mono PCM, hence the defaults.
    Raises ValueError when ``pcm`` is empty or not a whole number of frames.
    """
    if not pcm:
        raise ValueError("no audio samples to encode")
    segment = AudioSegment(
        data=pcm,
        sample_width=sample_width,
        frame_rate=rate,
        channels=channels,
    )
    buffer = BytesIO()
    segment.export(buffer, format="wav")
    return buffer.getvalue()


def to_data_uri(payload: bytes, mime: str) -> str:
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def decode_data_uri(uri: str) -> tuple[str, bytes]:
    """Split a base64 ``data:`` URI into ``(mime, payload)``."""
    header, sep, body = uri.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ValueError("not a base64 data URI")
    mime = header[len("data:"):].split(";", 1)[0] or "application/octet-stream"
    return mime, base64.b64decode(body)
