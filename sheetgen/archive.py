from __future__ import annotations

import logging
import tempfile
import zipfile
from pathlib import Path
from typing import Iterable

from sheetgen.errors import PackagingError


def build_zip(entries: Iterable[tuple[str, bytes]]) -> bytes:
    """Write (filename, content) pairs into a ZIP staged on disk and return its bytes.

    The staging directory is removed on every exit path.
    """
    with tempfile.TemporaryDirectory(prefix="sheetgen-") as tmp_dir:
        tmp_zip = Path(tmp_dir) / "bundle.zip"
        try:
            with zipfile.ZipFile(tmp_zip, "w", zipfile.ZIP_DEFLATED) as zf:
                for filename, content in entries:
                    zf.writestr(filename, content)
            data = tmp_zip.read_bytes()
        except (OSError, zipfile.BadZipFile, ValueError) as exc:
            logging.exception("Failed to build ZIP archive")
            raise PackagingError("Failed to create ZIP archive.") from exc

    logging.info("Built ZIP archive (%s bytes)", len(data))
    return data
