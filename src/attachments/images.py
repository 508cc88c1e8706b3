"""Receipt photo encoding (file -> data URL text stored on the bet)."""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path

DEFAULT_MIME = "application/octet-stream"


def encode_receipt(path: Path | str) -> str:
    """Read an image file and return it as a ``data:<mime>;base64,...`` string.

    Blocking file I/O: callers in async code run it via asyncio.to_thread
    and must finish it before starting any store write.
    """
    p = Path(path)
    data = p.read_bytes()
    mime, _ = mimetypes.guess_type(p.name)
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime or DEFAULT_MIME};base64,{encoded}"


def decode_receipt(data_url: str) -> tuple[str, bytes]:
    """Split a data URL back into (mime type, raw bytes)."""
    header, _, payload = data_url.partition(",")
    if not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("Not a base64 data URL")
    mime = header[len("data:"):-len(";base64")] or DEFAULT_MIME
    return mime, base64.b64decode(payload)
