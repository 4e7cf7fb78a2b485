from __future__ import annotations

from typing import Mapping, Optional

from sheetgen import config
from sheetgen.errors import InputError
from sheetgen.models import SheetOptions
from sheetgen.uploads import is_valid_filename

ACTIONS = {"generate_xml", "generate_sequence"}
PREFIX_TYPES = {"no-prefix", "character-name", "custom-prefix"}

_TRUE = {"1", "true", "on", "yes"}
_FALSE = {"0", "false", "off", "no", ""}


def _parse_bool(form: Mapping, key: str, default: bool, errors: list[str]) -> bool:
    raw = form.get(key)
    if raw is None:
        return default
    value = str(raw).strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    errors.append(f"'{key}' must be a boolean flag.")
    return default


def _parse_int(form: Mapping, key: str, default: int, errors: list[str]) -> Optional[int]:
    raw = form.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        errors.append(f"'{key}' must be an integer.")
        return None


def parse_sheet_options(form: Mapping) -> SheetOptions:
    """Build SheetOptions from submitted form fields, reporting every invalid field at once."""
    errors: list[str] = []

    name = str(form.get("character_name") or "").strip()
    if not is_valid_filename(name):
        errors.append("Please provide a valid character name.")

    action = str(form.get("spritesheet_action") or "").strip()
    if action not in ACTIONS:
        errors.append("Please choose a valid spritesheet action.")

    prefix_type = str(form.get("prefix_type") or "no-prefix").strip()
    if prefix_type not in PREFIX_TYPES:
        errors.append("Please choose a valid frame prefix type.")

    padding = _parse_int(form, "padding", config.DEFAULT_PADDING, errors)
    if padding is not None and padding > config.MAX_ATLAS_SIZE:
        errors.append(f"'padding' must not exceed {config.MAX_ATLAS_SIZE}.")
    xml_trim = _parse_int(form, "xml_trim", config.DEFAULT_TRIM_LIMIT, errors)
    if xml_trim is not None and xml_trim < -1:
        errors.append("'xml_trim' must be -1 or a non-negative integer.")

    alpha_threshold = _parse_int(form, "alpha_threshold", config.DEFAULT_ALPHA_THRESHOLD, errors)
    if alpha_threshold is not None and not 0 <= alpha_threshold <= config.MAX_ALPHA_THRESHOLD:
        errors.append(f"'alpha_threshold' must be between 0 and {config.MAX_ALPHA_THRESHOLD}.")

    use_prefix_on_xml = _parse_bool(form, "use_prefix_on_xml", False, errors)
    unique_frames_only = _parse_bool(form, "unique_frames_only", False, errors)
    clip_to_bbox = _parse_bool(form, "clip_to_bbox", True, errors)

    if errors:
        raise InputError(errors)

    return SheetOptions(
        name=name,
        action=action,
        padding=max(0, padding),
        prefix_type=prefix_type,
        custom_prefix=str(form.get("custom_prefix") or "").strip(),
        use_prefix_on_xml=use_prefix_on_xml,
        unique_frames_only=unique_frames_only,
        clip_to_bbox=clip_to_bbox,
        xml_trim=xml_trim,
        alpha_threshold=alpha_threshold,
    )
