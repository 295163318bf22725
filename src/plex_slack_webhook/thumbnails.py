"""Resize, normalize and fetch thumbnail images."""

import io
import logging

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from .exceptions import ImageDecodeError, UpstreamFetchError

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = (75, 75)
BACKGROUND = (255, 255, 255)
JPEG_QUALITY = 85
JPEG_MAGIC = b"\xff\xd8\xff"


def _open(raw: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, OSError, SyntaxError, EOFError, ValueError, Image.DecompressionBombError) as e:
        msg = f"Cannot decode image ({len(raw)} bytes): {e}"
        raise ImageDecodeError(msg) from e
    return image


def _encode_jpeg(image: Image.Image) -> bytes:
    out = io.BytesIO()
    image.save(out, format="JPEG", quality=JPEG_QUALITY)
    return out.getvalue()


def _flatten(image: Image.Image) -> Image.Image:
    """Drop transparency onto the background colour and return an RGB image."""
    image = image.convert("RGBA")
    canvas = Image.new("RGB", image.size, BACKGROUND)
    canvas.paste(image, mask=image.getchannel("A"))
    return canvas


def resize_thumbnail(raw: bytes) -> bytes:
    """Fit the image inside 75x75 keeping its aspect ratio, centered on white, as JPEG."""
    image = _flatten(ImageOps.exif_transpose(_open(raw)))
    fitted = ImageOps.contain(image, THUMBNAIL_SIZE, method=Image.Resampling.LANCZOS)

    canvas = Image.new("RGB", THUMBNAIL_SIZE, BACKGROUND)
    offset = ((THUMBNAIL_SIZE[0] - fitted.width) // 2, (THUMBNAIL_SIZE[1] - fitted.height) // 2)
    canvas.paste(fitted, offset)
    return _encode_jpeg(canvas)


def ensure_jpeg(data: bytes) -> bytes:
    """Return data as JPEG, re-encoding only when it is some other format."""
    if data.startswith(JPEG_MAGIC):
        return data
    return _encode_jpeg(_flatten(_open(data)))


async def fetch_remote_image(client: httpx.AsyncClient, url: str) -> bytes | None:
    """Download image bytes from url. Returns None if the fetch fails for any reason."""
    logger.info("[REDIS] Retrieving image from %s", url)
    try:
        response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        err = UpstreamFetchError(f"Thumbnail fetch from {url} failed: {e}")
        logger.warning("%s", err)
        return None
    return response.content or None
