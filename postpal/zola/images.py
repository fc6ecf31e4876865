# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

DEFAULT_IMAGE_FORMAT = "jpg"
IMAGE_PREFIX = "image_"

def classify_image(data: bytes) -> str:
    """Return the file extension for an image by sniffing its magic number.

    Anything unrecognised, or shorter than four bytes, is treated as JPEG.
    """
    if len(data) < 4:
        return DEFAULT_IMAGE_FORMAT

    if data[:3] == b"\xff\xd8\xff":
        return "jpg"
    if data[:4] == b"\x89PNG":
        return "png"
    if data[:3] == b"GIF":
        return "gif"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"

    return DEFAULT_IMAGE_FORMAT

def image_name(index: int, image_format: str) -> str:
    """Name of the media file at ``index`` inside a post directory."""
    return f"{IMAGE_PREFIX}{index}.{image_format}"

def image_format_of(name: str) -> str:
    """Extension of an image file name, falling back to the default format."""
    parts = name.split(".")
    if len(parts) > 1 and parts[-1]:
        return parts[-1]
    return DEFAULT_IMAGE_FORMAT
