"""
Image sanitization for participant uploads.

Uploaded photos may carry EXIF/GPS/XMP data identifying a participant's
location or device. Every image is decoded, rotated upright according to its
EXIF orientation, rebuilt from raw pixel data and re-encoded as JPEG, so no
embedded metadata survives.
"""
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps

import config


class ImageSanitizationError(ValueError):
    """Raised when upload bytes cannot be decoded or re-encoded as an image."""


@dataclass
class SanitizedImage:
    data: bytes
    width: int
    height: int
    content_type: str = "image/jpeg"
    extension: str = ".jpg"


def _flatten(image: Image.Image) -> Image.Image:
    """Convert to RGB, compositing any alpha channel onto white."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def sanitize_image(raw: bytes, quality: int = None, max_pixels: int = None) -> SanitizedImage:
    """
    Decode, auto-orient, strip metadata and re-encode an uploaded image.

    Args:
        raw: Uploaded bytes
        quality: JPEG quality (defaults to config.JPEG_QUALITY)
        max_pixels: Largest accepted width * height (defaults to config.MAX_IMAGE_PIXELS)

    Returns:
        SanitizedImage with JPEG bytes free of embedded metadata

    Raises:
        ImageSanitizationError: If the bytes are not a decodable image, the
            image is too large, or it cannot be re-encoded
    """
    if not raw:
        raise ImageSanitizationError("File is empty")

    pixel_limit = max_pixels or config.MAX_IMAGE_PIXELS
    out = BytesIO()
    try:
        with Image.open(BytesIO(raw)) as source:
            # Header only at this point; pixels are not decoded yet
            width, height = source.size
            if width * height > pixel_limit:
                raise ImageSanitizationError(
                    f"Image dimensions {width}x{height} exceed the {pixel_limit} pixel limit"
                )
            source.load()
            oriented = ImageOps.exif_transpose(source)
            rgb = _flatten(oriented)
            # Fresh image from pixel data only: info dict (exif, icc, xmp, comments) is dropped
            clean = Image.frombytes("RGB", rgb.size, rgb.tobytes())
        clean.save(out, format="JPEG", quality=quality or config.JPEG_QUALITY, optimize=True)
    except ImageSanitizationError:
        raise
    except Exception as e:
        # Pillow surfaces corrupt input as OSError, ValueError, struct.error, SyntaxError and others
        raise ImageSanitizationError(f"Could not decode image: {e}") from e

    return SanitizedImage(data=out.getvalue(), width=clean.width, height=clean.height)
