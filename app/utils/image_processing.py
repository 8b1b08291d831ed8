import base64
import binascii
import io
import logging
from typing import Optional, Tuple

import requests
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_REFERENCE_SIDE = 1024
DOWNLOAD_TIMEOUT = 60

_FORMAT_EXTENSIONS = {
    "PNG": ".png",
    "JPEG": ".jpg",
    "WEBP": ".webp",
    "GIF": ".gif",
}

_FORMAT_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}


def decode_base64_image(encoded: str) -> bytes:
    """Decode a raw base64 string or a ``data:image/...;base64,`` URL into bytes.

    Raises ValueError if the payload is empty or not valid base64.
    """
    if not encoded or not encoded.strip():
        raise ValueError("Image payload is empty")

    payload = encoded.strip()
    if payload.startswith("data:"):
        header, _, payload = payload.partition(",")
        if ";base64" not in header:
            raise ValueError("Only base64 data URLs are supported")
    payload = "".join(payload.split())

    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Image payload is not valid base64: {str(e)}")


def detect_image_format(image_bytes: bytes) -> Optional[str]:
    """Return the Pillow format name (PNG, JPEG, ...) or None if the bytes are not an image."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return img.format
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError):
        return None


def extension_for(image_bytes: bytes) -> str:
    return _FORMAT_EXTENSIONS.get(detect_image_format(image_bytes) or "", ".png")


def mime_type_for(image_bytes: bytes) -> str:
    return _FORMAT_MIME_TYPES.get(detect_image_format(image_bytes) or "", "image/png")


def to_data_url(image_bytes: bytes) -> str:
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type_for(image_bytes)};base64,{encoded}"


def normalize_reference_image(encoded: str) -> Tuple[bytes, str]:
    """Decode an uploaded photo, shrink it and re-encode it for upstream use.

    Returns ``(png_bytes, jpeg_data_url)``: PNG bytes for image-edit uploads and
    a compact JPEG data URL for vision prompts.
    Raises ValueError when the payload is not a readable image.
    """
    raw = decode_base64_image(encoded)

    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ValueError(f"Photo could not be read as an image: {str(e)}")

    img = img.convert("RGB")
    img.thumbnail((MAX_REFERENCE_SIDE, MAX_REFERENCE_SIDE), Image.Resampling.LANCZOS)

    png_buffer = io.BytesIO()
    img.save(png_buffer, format="PNG")

    jpeg_buffer = io.BytesIO()
    img.save(jpeg_buffer, format="JPEG", quality=90)
    jpeg_data_url = "data:image/jpeg;base64," + base64.b64encode(jpeg_buffer.getvalue()).decode("utf-8")

    logger.debug(f"Normalized reference image to {img.width}x{img.height}")
    return png_buffer.getvalue(), jpeg_data_url


def download_image(image_url: str, timeout: float = DOWNLOAD_TIMEOUT) -> bytes:
    """Fetch generated image bytes from the provider's (time-limited) URL.

    Blocking; call through ``asyncio.to_thread`` from async code.
    Raises requests.RequestException on network or HTTP errors.
    """
    response = requests.get(image_url, timeout=timeout)
    response.raise_for_status()
    if not response.content:
        raise requests.RequestException(f"Empty body downloading {image_url}")
    return response.content
