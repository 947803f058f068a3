"""
Image upload validation shared by report photos and profile pictures.
"""

import os
import re

from participium.core.exceptions import BadRequestError

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp")
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB
MIN_REPORT_IMAGES = 1
MAX_REPORT_IMAGES = 3

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(filename: str) -> str:
    """Basename only, every character outside [a-zA-Z0-9.-] replaced by "_"."""
    return _UNSAFE_FILENAME_CHARS.sub("_", os.path.basename(filename or "upload"))


def validate_image(filename: str, content_type: str, size: int) -> None:
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise BadRequestError(f"Invalid file type: {content_type}. Allowed types: JPEG, PNG, WebP")
    if size > MAX_IMAGE_SIZE:
        raise BadRequestError(f"File {filename} exceeds 5MB limit")


def validate_report_image_count(count: int) -> None:
    if count < MIN_REPORT_IMAGES or count > MAX_REPORT_IMAGES:
        raise BadRequestError(
            f"You must upload between {MIN_REPORT_IMAGES} and {MAX_REPORT_IMAGES} images"
        )
