from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from sheetgen import assemble
from sheetgen import config
from sheetgen.archive import build_zip
from sheetgen.dedup import FrameStore
from sheetgen.errors import InputError
from sheetgen.frames import extract_frames
from sheetgen.models import Frame, SheetOptions, Upload
from sheetgen.normalize import normalize_frame
from sheetgen.packer import pack_rectangles


def normalize_frames(frames: list[Frame], options: SheetOptions) -> FrameStore:
    """Normalize every frame on a worker pool and collect the results by order index."""
    store = FrameStore()
    global_prefix = options.global_prefix

    def _normalize(frame: Frame):
        return normalize_frame(
            frame,
            padding=options.padding,
            clip_to_bbox=options.clip_to_bbox,
            alpha_threshold=options.alpha_threshold,
        )

    with ThreadPoolExecutor(max_workers=config.NORMALIZE_WORKERS) as pool:
        for frame, (img, rect) in zip(frames, pool.map(_normalize, frames)):
            prefix = (global_prefix if frame.apply_prefix else "") + frame.animation_prefix
            store.add(frame.index, img, prefix, rect)

    logging.info("Normalized %s frames into %s unique bitmaps", len(store), len(store.hashes))
    return store


def build_entries(store: FrameStore, options: SheetOptions) -> list[tuple[str, bytes]]:
    if options.action == "generate_xml":
        packed = pack_rectangles(store.pack_rects())
        return assemble.export_xml(store, packed, options.name)
    if options.unique_frames_only:
        return assemble.export_unique_frames(store)
    return assemble.export_sequence(store)


def generate_spritesheet(
    options: SheetOptions,
    single_frames: list[Upload],
    sheet_pngs: list[Upload],
    sheet_xmls: list[Upload],
) -> tuple[str, bytes]:
    """Run one full invocation and return the archive name and its bytes.

    Raises InputError with every collected message before any packing happens;
    PackingError and PackagingError propagate as raised.
    """
    if not 0 <= options.alpha_threshold <= config.MAX_ALPHA_THRESHOLD:
        raise InputError(f"'alpha_threshold' must be between 0 and {config.MAX_ALPHA_THRESHOLD}.")
    if options.padding < 0:
        raise InputError("'padding' must not be negative.")
    if options.padding > config.MAX_ATLAS_SIZE:
        raise InputError(f"'padding' must not exceed {config.MAX_ATLAS_SIZE}.")

    frames, errors = extract_frames(single_frames, sheet_pngs, sheet_xmls, options)
    if errors:
        for message in errors:
            logging.warning("Input error: %s", message)
        raise InputError(errors)

    store = normalize_frames(frames, options)
    entries = build_entries(store, options)
    data = build_zip(entries)
    logging.info("Generated %s (%s files) for %s frames", options.archive_name, len(entries), len(frames))
    return options.archive_name, data
