from __future__ import annotations

import io
import xml.etree.ElementTree as ET

from PIL import Image

from sheetgen import config
from sheetgen.dedup import FrameStore
from sheetgen.errors import PackagingError
from sheetgen.models import FrameRect, PackResult
from sheetgen.normalize import create_transparent_image


class PrefixCounter:
    """Per-prefix sequence numbers: 0 on first sight, then 1, 2, ..."""

    def __init__(self) -> None:
        self._prefix_map: dict[str, int] = {}

    def add_prefix(self, prefix: str) -> int:
        if prefix in self._prefix_map:
            self._prefix_map[prefix] += 1
        else:
            self._prefix_map[prefix] = 0
        return self._prefix_map[prefix]


def encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def compose_atlas(store: FrameStore, packed: PackResult) -> Image.Image:
    atlas = create_transparent_image(packed.width, packed.height)
    for digest, fit in packed.placements.items():
        atlas.paste(store.bitmap(digest), (fit.x, fit.y))
    return atlas


def build_atlas_xml(store: FrameStore, packed: PackResult, image_path: str) -> bytes:
    root = ET.Element("TextureAtlas", {"imagePath": image_path})
    for text in config.XML_COMMENTS:
        root.append(ET.Comment(text))

    counter = PrefixCounter()
    for frame in store.frames_in_order():
        fit = packed.placements[frame.hash]
        suffix = str(counter.add_prefix(frame.animation_prefix)).zfill(config.SEQUENCE_DIGITS)
        rect = frame.frame_rect
        ET.SubElement(
            root,
            "SubTexture",
            {
                "name": frame.animation_prefix + suffix,
                "x": str(fit.x),
                "y": str(fit.y),
                "width": str(fit.width),
                "height": str(fit.height),
                "frameX": str(rect.frame_x),
                "frameY": str(rect.frame_y),
                "frameWidth": str(rect.frame_width),
                "frameHeight": str(rect.frame_height),
            },
        )

    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n"


def export_xml(store: FrameStore, packed: PackResult, name: str) -> list[tuple[str, bytes]]:
    atlas = compose_atlas(store, packed)
    return [
        (f"{name}.png", encode_png(atlas)),
        (f"{name}.xml", build_atlas_xml(store, packed, f"{name}.png")),
    ]


def export_unique_frames(store: FrameStore) -> list[tuple[str, bytes]]:
    return [
        (f"{config.UNIQUE_FRAME_PREFIX}{digest}.png", encode_png(img))
        for digest, img in store.bitmaps()
    ]


def reconstruct_frame(img: Image.Image, frame_rect: FrameRect) -> Image.Image:
    """Place a trimmed bitmap back on a canvas the size of its original frame."""
    width = frame_rect.frame_width + max(frame_rect.frame_x, 0)
    height = frame_rect.frame_height + max(frame_rect.frame_y, 0)
    canvas = create_transparent_image(width, height)
    canvas.paste(img, (max(-frame_rect.frame_x, 0), max(-frame_rect.frame_y, 0)))
    return canvas


def export_sequence(store: FrameStore) -> list[tuple[str, bytes]]:
    counter = PrefixCounter()
    entries = []
    seen: set[str] = set()
    for frame in store.frames_in_order():
        seq = counter.add_prefix(frame.animation_prefix)
        filename = f"{frame.animation_prefix}{seq}.png"
        if filename in seen:
            raise PackagingError(f"Two frames would both be written as {filename}.")
        seen.add(filename)
        canvas = reconstruct_frame(store.bitmap(frame.hash), frame.frame_rect)
        entries.append((filename, encode_png(canvas)))
    return entries
