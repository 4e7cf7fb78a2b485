from __future__ import annotations

import io
import logging
import re
from typing import Iterable, Optional

from PIL import Image, UnidentifiedImageError

from sheetgen.models import Upload


_RESERVED_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_RESERVED_NAMES = re.compile(r"(con|prn|aux|nul|com\d|lpt\d)", re.IGNORECASE)


def is_valid_filename(filename: str) -> bool:
    if not filename or len(filename.encode("utf-8")) > 255:
        return False
    if filename in {".", ".."}:
        return False
    if _RESERVED_CHARS.search(filename):
        return False
    if _RESERVED_NAMES.fullmatch(filename):
        return False
    return True


def collect_uploads(files: Iterable) -> list[Upload]:
    """Read werkzeug FileStorage objects into Upload records, skipping empty slots."""
    uploads: list[Upload] = []
    for storage in files:
        filename = storage.filename or ""
        if not filename:
            continue
        uploads.append(Upload(filename=filename, data=storage.read()))
    return uploads


def load_image(data: bytes) -> Optional[Image.Image]:
    """Decode raw bytes into an RGBA image, or None when Pillow cannot read them."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        logging.warning("Could not decode image: %s", exc)
        return None
