from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from sheetgen import config
from sheetgen.models import Frame, FrameRect

BBox = Tuple[int, int, int, int]


def create_transparent_image(width: int, height: int) -> Image.Image:
    return Image.new("RGBA", (width, height), (0, 0, 0, 0))


def transform_image(
    img: Image.Image, new_width: int, new_height: int, flip_x: bool, flip_y: bool
) -> Image.Image:
    """Nearest-neighbour resize, then flip. Flips always run after the resize."""
    result = img
    if (new_width, new_height) != result.size:
        result = result.resize((new_width, new_height), Image.Resampling.NEAREST)
    if flip_x:
        result = result.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
    if flip_y:
        result = result.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
    return result


def get_bounding_box(img: Image.Image, alpha_threshold: int = 0) -> Optional[BBox]:
    """Return (left, top, right, bottom) of the visible pixels, or None.

    Alpha is judged on a 7-bit scale: a pixel is visible when ``alpha >> 1``
    exceeds ``alpha_threshold``.
    """
    if img.width == 0 or img.height == 0:
        return None
    alpha = np.asarray(img.getchannel("A"), dtype=np.uint8)
    visible = (alpha >> 1) > alpha_threshold
    rows = np.flatnonzero(visible.any(axis=1))
    if rows.size == 0:
        return None
    cols = np.flatnonzero(visible.any(axis=0))
    return int(cols[0]), int(rows[0]), int(cols[-1]) + 1, int(rows[-1]) + 1


def pad_image_uniform(img: Image.Image, padding: int) -> Image.Image:
    padded = create_transparent_image(img.width + 2 * padding, img.height + 2 * padding)
    padded.paste(img, (padding, padding))
    return padded


def placeholder_image() -> Image.Image:
    return create_transparent_image(config.PLACEHOLDER_SIZE, config.PLACEHOLDER_SIZE)


def normalize_frame(
    frame: Frame, *, padding: int, clip_to_bbox: bool, alpha_threshold: int = 0
) -> tuple[Image.Image, FrameRect]:
    """Transform, trim and pad one frame.

    Returns the bitmap to store and the frame rectangle corrected so the
    original canvas can still be rebuilt from the smaller bitmap.
    """
    t = frame.transform
    img = transform_image(frame.image, t.new_width, t.new_height, t.flip_x, t.flip_y)

    bbox = get_bounding_box(img, alpha_threshold)
    if bbox is None:
        return placeholder_image(), frame.frame_rect

    left, top = bbox[0], bbox[1]
    if clip_to_bbox:
        img = img.crop(bbox)

    img = pad_image_uniform(img, padding)
    rect = replace(
        frame.frame_rect,
        frame_x=frame.frame_rect.frame_x - (left - padding),
        frame_y=frame.frame_rect.frame_y - (top - padding),
    )
    return img, rect
