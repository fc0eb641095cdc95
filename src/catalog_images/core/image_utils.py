"""Image transform utilities: decode, resize and JPEG-encode with Pillow."""

import io
from pathlib import Path
from typing import Any, Dict, Union

from PIL import Image

from .error_handling import with_error_handling
from .exceptions import DecodeError, TransformError

# Modes the JPEG encoder accepts as-is; everything else is converted to RGB.
JPEG_COMPATIBLE_MODES = ("RGB", "L")


@with_error_handling(DecodeError)
def decode_image(image_bytes: bytes) -> Image.Image:
    """
    Decode raw bytes into a fully loaded Pillow image.

    The codec is detected from the content, not from any file extension, so
    JPEG, PNG, GIF, WebP and the other formats Pillow ships with all work.

    Args:
        image_bytes: Raw image payload

    Returns:
        Loaded PIL Image

    Raises:
        DecodeError: If the payload is empty, corrupt or in an unsupported format
    """
    if not image_bytes:
        raise DecodeError("Empty image payload")

    image = Image.open(io.BytesIO(image_bytes))
    image.load()
    return image


@with_error_handling(TransformError)
def resize_image(img: Image.Image, width: int, height: int) -> Image.Image:
    """
    Scale an image to exactly `width` x `height` with Lanczos resampling.

    Width and height are independent targets: the aspect ratio is not
    preserved. Palette and alpha images are converted to RGB first so the
    Lanczos filter applies (Pillow falls back to nearest-neighbour on "P").

    Raises:
        TransformError: If the target size is invalid or Pillow fails
    """
    if width < 1 or height < 1:
        raise TransformError(f"Invalid target size {width}x{height}")

    if img.mode not in JPEG_COMPATIBLE_MODES:
        img = img.convert("RGB")

    return img.resize((width, height), Image.Resampling.LANCZOS)


@with_error_handling(TransformError)
def encode_jpeg(img: Image.Image, quality: int) -> bytes:
    """Encode an image as baseline JPEG at the given quality."""
    if img.mode not in JPEG_COMPATIBLE_MODES:
        img = img.convert("RGB")

    output_stream = io.BytesIO()
    img.save(output_stream, format="JPEG", quality=quality)
    return output_stream.getvalue()


def describe_image(img: Image.Image) -> Dict[str, Any]:
    """Basic image information used in debug logs."""
    return {
        "width": img.width,
        "height": img.height,
        "format": img.format or "unknown",
        "mode": img.mode,
    }


def calculate_output_path(output_dir: Union[str, Path], identifier: str) -> Path:
    """
    Calculate the output file path for a record identifier.

    The identifier is used verbatim as the filename stem.

    Args:
        output_dir: Directory receiving the JPEG files
        identifier: Record identifier

    Returns:
        `<output_dir>/<identifier>.jpg`
    """
    return Path(output_dir) / f"{identifier}.jpg"
