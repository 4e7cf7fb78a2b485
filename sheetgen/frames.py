from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Optional

from PIL import Image

from sheetgen import config
from sheetgen.models import Frame, FrameRect, SheetOptions, Transform, Upload
from sheetgen.uploads import load_image

_DIGITS = "0123456789"


def remove_numeric_suffix(value: str, limit: int) -> str:
    """Strip up to ``limit`` trailing digits from ``value`` (-1 strips the whole run).

    A name made only of digits is returned unchanged when the whole of it would
    be stripped, so every frame keeps a non-empty prefix.
    """
    run = len(value) - len(value.rstrip(_DIGITS))
    if limit >= 0:
        run = min(run, limit)
    if run == len(value):
        return value
    return value[: len(value) - run]


class FrameCounter:
    def __init__(self) -> None:
        self._next = 0

    def take(self) -> int:
        index = self._next
        self._next += 1
        return index


def _full_rect(img: Image.Image) -> FrameRect:
    return FrameRect(0, 0, img.width, img.height)


def _identity(img: Image.Image) -> Transform:
    return Transform(new_width=img.width, new_height=img.height)


def frames_from_images(
    uploads: list[Upload], counter: FrameCounter, errors: list[str]
) -> list[Frame]:
    frames: list[Frame] = []
    for upload in uploads:
        img = load_image(upload.data)
        if img is None:
            errors.append(f"Failed to read PNG frame {upload.filename}.")
            continue
        frames.append(
            Frame(
                index=counter.take(),
                image=img,
                animation_prefix=upload.stem,
                apply_prefix=True,
                frame_rect=_full_rect(img),
                transform=_identity(img),
            )
        )
    return frames


def _int_attr(sub: ET.Element, key: str, default: Optional[int] = None) -> int:
    raw = sub.get(key)
    if raw is None:
        if default is None:
            raise ValueError(f"missing '{key}'")
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"'{key}' is not an integer: {raw!r}") from None


def parse_descriptor(data: bytes) -> list[dict]:
    """Parse a TextureAtlas XML document into raw SubTexture records.

    Returns one dict per entry; entries that cannot be read carry an ``error``
    key instead of geometry so the caller can report them and move on.
    """
    root = ET.fromstring(data)
    entries: list[dict] = []
    for pos, sub in enumerate(root.findall("SubTexture")):
        name = sub.get("name")
        if not name:
            entries.append({"error": f"entry #{pos} has no name"})
            continue
        try:
            x = _int_attr(sub, "x")
            y = _int_attr(sub, "y")
            width = _int_attr(sub, "width")
            height = _int_attr(sub, "height")
            frame_x = _int_attr(sub, "frameX", 0)
            frame_y = _int_attr(sub, "frameY", 0)
            frame_w = _int_attr(sub, "frameWidth", width)
            frame_h = _int_attr(sub, "frameHeight", height)
        except ValueError as exc:
            entries.append({"error": f"entry {name!r}: {exc}"})
            continue
        if min(width, height, frame_w, frame_h) <= 0:
            entries.append({"error": f"entry {name!r} has an empty rectangle"})
            continue
        if (
            frame_w + abs(frame_x) > config.MAX_ATLAS_SIZE
            or frame_h + abs(frame_y) > config.MAX_ATLAS_SIZE
        ):
            entries.append({"error": f"entry {name!r} has a frame larger than {config.MAX_ATLAS_SIZE}px"})
            continue
        entries.append(
            {
                "name": name,
                "x": x,
                "y": y,
                "width": width,
                "height": height,
                "frame_rect": FrameRect(frame_x, frame_y, frame_w, frame_h),
            }
        )
    return entries


def _match_pairs(
    sheet_pngs: list[Upload], sheet_xmls: list[Upload], errors: list[str]
) -> list[tuple[Upload, Upload]]:
    png_map: dict[str, Upload] = {}
    for png in sheet_pngs:
        key = png.stem.lower()
        if key in png_map:
            errors.append(f"Spritesheet {png.filename} is uploaded more than once.")
            continue
        png_map[key] = png

    xml_map: dict[str, Upload] = {}
    for xml in sheet_xmls:
        key = xml.stem.lower()
        if key in xml_map:
            errors.append(f"XML file {xml.filename} is uploaded more than once.")
            continue
        xml_map[key] = xml

    for key, xml in xml_map.items():
        if key not in png_map:
            errors.append(f"XML file {xml.filename} is missing a matching spritesheet.")

    pairs = []
    for key in sorted(png_map):
        png = png_map[key]
        if key not in xml_map:
            errors.append(f"Spritesheet {png.filename} is missing a matching XML file.")
            continue
        pairs.append((png, xml_map[key]))
    return pairs


def frames_from_spritesheets(
    sheet_pngs: list[Upload],
    sheet_xmls: list[Upload],
    options: SheetOptions,
    counter: FrameCounter,
    errors: list[str],
) -> list[Frame]:
    frames: list[Frame] = []
    for png, xml in _match_pairs(sheet_pngs, sheet_xmls, errors):
        sheet = load_image(png.data)
        if sheet is None:
            errors.append(f"Failed to read spritesheet image {png.filename}.")
            continue
        try:
            entries = parse_descriptor(xml.data)
        except ET.ParseError as exc:
            logging.warning("Could not parse %s: %s", xml.filename, exc)
            errors.append(f"Failed to parse XML file {xml.filename}.")
            continue

        for entry in entries:
            if "error" in entry:
                errors.append(f"Malformed SubTexture in {xml.filename}: {entry['error']}.")
                continue
            x, y, w, h = entry["x"], entry["y"], entry["width"], entry["height"]
            if x < 0 or y < 0 or x + w > sheet.width or y + h > sheet.height:
                errors.append(
                    f"SubTexture {entry['name']!r} lies outside spritesheet {png.filename}."
                )
                continue
            cropped = sheet.crop((x, y, x + w, y + h))
            frames.append(
                Frame(
                    index=counter.take(),
                    image=cropped,
                    animation_prefix=remove_numeric_suffix(entry["name"], options.xml_trim),
                    apply_prefix=options.use_prefix_on_xml,
                    frame_rect=entry["frame_rect"],
                    transform=Transform(new_width=w, new_height=h),
                )
            )
    return frames


def extract_frames(
    single_frames: list[Upload],
    sheet_pngs: list[Upload],
    sheet_xmls: list[Upload],
    options: SheetOptions,
) -> tuple[list[Frame], list[str]]:
    """Turn raw uploads into ordered Frame records plus any input errors found."""
    errors: list[str] = []
    if not single_frames and not sheet_pngs:
        errors.append("Please upload PNG frames or spritesheets.")
        return [], errors

    counter = FrameCounter()
    frames = frames_from_images(single_frames, counter, errors)
    frames.extend(frames_from_spritesheets(sheet_pngs, sheet_xmls, options, counter, errors))

    if not frames and not errors:
        errors.append("No usable frames were found in the upload.")
    elif len(frames) > config.MAX_FRAMES:
        errors.append(f"Too many frames ({len(frames)}); the limit is {config.MAX_FRAMES}.")

    logging.info("Extracted %s frames (%s errors)", len(frames), len(errors))
    return frames, errors
