from __future__ import annotations

import hashlib

from PIL import Image

from sheetgen.models import FrameRect, NormalizedFrame, PackRect


def hash_image(img: Image.Image) -> str:
    """MD5 over the image size and its raw RGBA buffer.

    Hashing the raw buffer rather than an encoded PNG keeps ancillary chunks
    carried over from the source file out of the digest.
    """
    rgba = img if img.mode == "RGBA" else img.convert("RGBA")
    digest = hashlib.md5(f"{rgba.width}x{rgba.height}:".encode("ascii"))
    digest.update(rgba.tobytes())
    return digest.hexdigest()


class FrameStore:
    """Canonical bitmaps and the frames that reference them, in insertion order."""

    def __init__(self) -> None:
        self._hashes: list[str] = []
        self._bitmaps: dict[str, Image.Image] = {}
        self._frames_by_hash: dict[str, list[NormalizedFrame]] = {}
        self._indexes: list[int] = []
        self._frame_by_index: dict[int, NormalizedFrame] = {}
        self._sorted = True

    def add(self, index: int, img: Image.Image, prefix: str, frame_rect: FrameRect) -> NormalizedFrame:
        if index in self._frame_by_index:
            raise ValueError(f"Frame index {index} is already stored")

        digest = hash_image(img)
        if digest not in self._bitmaps:
            self._hashes.append(digest)
            self._bitmaps[digest] = img
            self._frames_by_hash[digest] = []

        frame = NormalizedFrame(index=index, hash=digest, animation_prefix=prefix, frame_rect=frame_rect)
        self._frames_by_hash[digest].append(frame)
        if self._indexes and index < self._indexes[-1]:
            self._sorted = False
        self._indexes.append(index)
        self._frame_by_index[index] = frame
        return frame

    def __len__(self) -> int:
        return len(self._indexes)

    @property
    def hashes(self) -> list[str]:
        return list(self._hashes)

    def bitmap(self, digest: str) -> Image.Image:
        return self._bitmaps[digest]

    def bitmaps(self) -> list[tuple[str, Image.Image]]:
        return [(digest, self._bitmaps[digest]) for digest in self._hashes]

    def frames_for(self, digest: str) -> list[NormalizedFrame]:
        return list(self._frames_by_hash.get(digest, []))

    def frames_in_order(self) -> list[NormalizedFrame]:
        if not self._sorted:
            self._indexes.sort()
            self._sorted = True
        return [self._frame_by_index[index] for index in self._indexes]

    def pack_rects(self) -> list[PackRect]:
        return [PackRect(digest, img.width, img.height) for digest, img in self.bitmaps()]
