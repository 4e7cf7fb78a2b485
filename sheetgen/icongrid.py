from __future__ import annotations

import logging
from typing import Optional

from PIL import Image

from sheetgen import config
from sheetgen.assemble import encode_png
from sheetgen.errors import InputError
from sheetgen.models import Upload
from sheetgen.normalize import create_transparent_image, get_bounding_box
from sheetgen.uploads import load_image


def build_icon_strip(icons: list[Image.Image]) -> Image.Image:
    total_width = sum(icon.width for icon in icons)
    max_height = max((icon.height for icon in icons), default=0)
    strip = create_transparent_image(total_width, max_height)
    cur_x = 0
    for icon in icons:
        strip.paste(icon, (cur_x, 0))
        cur_x += icon.width
    return strip


def _last_used_cell(grid: Image.Image, icon_size: int, icons_per_row: int) -> int:
    """Index of the last occupied cell, or -1 when the grid is empty."""
    bbox = get_bounding_box(grid)
    if bbox is None:
        return -1
    # bbox right/bottom are exclusive; content ending on a cell edge stays in that cell
    bottom_row = (bbox[3] - 1) // icon_size
    row_img = grid.crop((0, bottom_row * icon_size, grid.width, (bottom_row + 1) * icon_size))
    row_bbox = get_bounding_box(row_img)
    right_col = (row_bbox[2] - 1) // icon_size if row_bbox else 0
    return bottom_row * icons_per_row + right_col


def append_to_icongrid(
    grid: Image.Image, icons: list[Image.Image], icon_size: int = config.ICON_SIZE
) -> Image.Image:
    """Append icons after the last occupied cell of an existing icon grid.

    Icons smaller than a cell are centred in it; the grid grows by whole rows.
    """
    icons_per_row = grid.width // icon_size
    if icons_per_row == 0:
        raise InputError(f"The icongrid base must be at least {icon_size}px wide.")

    cur = _last_used_cell(grid, icon_size, icons_per_row)
    rows_available = grid.height // icon_size
    for icon in icons:
        cur += 1
        row, col = divmod(cur, icons_per_row)
        if row >= rows_available:
            grown = create_transparent_image(grid.width, (row + 1) * icon_size)
            grown.paste(grid, (0, 0))
            grid = grown
            rows_available = grid.height // icon_size

        x = col * icon_size
        y = row * icon_size
        if icon.width < icon_size:
            x += (icon_size - icon.width) // 2
        if icon.height < icon_size:
            y += (icon_size - icon.height) // 2
        grid.alpha_composite(icon, (x, y))
    return grid


def generate_icongrid(
    icon_files: list[Upload], *, legacy_mode: bool = False, base: Optional[Upload] = None
) -> tuple[str, bytes]:
    if not icon_files:
        raise InputError("Please upload at least one icon.")

    errors: list[str] = []
    icons: list[Image.Image] = []
    for upload in icon_files:
        img = load_image(upload.data)
        if img is None:
            errors.append(f"Failed to read icon {upload.filename}.")
            continue
        icons.append(img)
    if errors:
        raise InputError(errors)

    if legacy_mode:
        if base is None:
            raise InputError("Please upload a legacy icongrid base image.")
        grid = load_image(base.data)
        if grid is None:
            raise InputError("Failed to read icongrid base image.")
        result = append_to_icongrid(grid, icons)
        logging.info("Appended %s icons; icongrid is now %sx%s", len(icons), result.width, result.height)
        return "iconGrid.png", encode_png(result)

    strip = build_icon_strip(icons)
    logging.info("Built icon strip of %s icons (%sx%s)", len(icons), strip.width, strip.height)
    return "icon-grid.png", encode_png(strip)
