from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict

from PIL import Image

from sheetgen import config


@dataclass(frozen=True)
class Upload:
    filename: str
    data: bytes

    @property
    def stem(self) -> str:
        return PurePath(self.filename).stem


@dataclass(frozen=True)
class FrameRect:
    """Placement of a frame on its original, pre-trim canvas."""

    frame_x: int
    frame_y: int
    frame_width: int
    frame_height: int


@dataclass(frozen=True)
class Transform:
    new_width: int
    new_height: int
    flip_x: bool = False
    flip_y: bool = False


@dataclass(frozen=True)
class Frame:
    index: int
    image: Image.Image
    animation_prefix: str
    apply_prefix: bool
    frame_rect: FrameRect
    transform: Transform


@dataclass(frozen=True)
class NormalizedFrame:
    index: int
    hash: str
    animation_prefix: str
    frame_rect: FrameRect


@dataclass(frozen=True)
class PackRect:
    id: str
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class PlacedRect:
    id: str
    x: int
    y: int
    width: int
    height: int


@dataclass
class PackResult:
    width: int
    height: int
    placements: Dict[str, PlacedRect] = field(default_factory=dict)


@dataclass(frozen=True)
class SheetOptions:
    name: str
    action: str = "generate_xml"
    padding: int = config.DEFAULT_PADDING
    prefix_type: str = "no-prefix"
    custom_prefix: str = ""
    use_prefix_on_xml: bool = False
    unique_frames_only: bool = False
    clip_to_bbox: bool = True
    xml_trim: int = config.DEFAULT_TRIM_LIMIT
    alpha_threshold: int = config.DEFAULT_ALPHA_THRESHOLD

    @property
    def global_prefix(self) -> str:
        if self.prefix_type == "character-name":
            return self.name + " "
        if self.prefix_type == "custom-prefix" and self.custom_prefix:
            return self.custom_prefix + " "
        return ""

    @property
    def archive_name(self) -> str:
        return f"{self.name}.zip"
