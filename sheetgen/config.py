from __future__ import annotations

# Uploads
IMAGE_TYPES = {".png"}
DESCRIPTOR_TYPES = {".xml"}
MAX_CONTENT_LENGTH = 200 * 1024 * 1024

# Frame processing
DEFAULT_PADDING = 2
DEFAULT_TRIM_LIMIT = -1
DEFAULT_ALPHA_THRESHOLD = 0
MAX_ALPHA_THRESHOLD = 127
PLACEHOLDER_SIZE = 4

# Packing bounds
MAX_FRAMES = 4096
MAX_ATLAS_SIZE = 16384

# Export
SEQUENCE_DIGITS = 4
UNIQUE_FRAME_PREFIX = "image_frame-"
XML_COMMENTS = (
    " Created using the Spritesheet and XML generator ",
    " https://uncertainprod.github.io/FNF-Spritesheet-XML-generator-Web ",
)

# Icon grid
ICON_SIZE = 150

# Runtime tuning
NORMALIZE_WORKERS = 4
