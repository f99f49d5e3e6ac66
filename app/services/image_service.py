import base64
import binascii
import io
import logging
import re
from urllib.parse import urlparse

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from app.config import Settings
from app.errors import ImageTooLarge, InvalidInput, NotAnImage, PayloadTooLarge
from app.schemas.media import MediaReference, NormalizedImage
from app.services.fetch import fetch_media

logger = logging.getLogger(__name__)

JPEG_QUALITY = 80

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=.-]+)*;base64,", re.IGNORECASE)


def split_data_url(value: str) -> tuple[str | None, str]:
    """Return (declared mime type, bare base64) for a data URL or plain base64 string."""
    match = _DATA_URL.match(value)
    if not match:
        return None, value
    return (match.group("mime") or "").lower() or None, value[match.end():]


def decode_base64(value: str) -> bytes:
    cleaned = "".join(value.split())
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidInput("Invalid base64 payload") from exc


class ImageService:
    """Fetch or decode an image and re-encode it as a bounded JPEG."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    async def normalize(self, ref: MediaReference) -> NormalizedImage:
        if ref.is_url:
            data = await self._fetch(ref.value)
        else:
            declared, payload = split_data_url(ref.value)
            if declared and not declared.startswith("image/"):
                raise NotAnImage(f"Inline payload declares {declared}, expected an image")
            data = decode_base64(payload)
            if len(data) > self.settings.max_download_bytes:
                raise PayloadTooLarge(f"Image exceeds {self.settings.max_download_bytes} bytes")

        return self.reencode(data)

    async def _fetch(self, url: str) -> bytes:
        scheme = urlparse(url).scheme.lower()
        if scheme not in ("http", "https"):
            raise InvalidInput(f"Unsupported image URL scheme: {scheme or 'none'}")
        if scheme == "http" and not self.settings.allow_insecure_image_urls:
            raise InvalidInput("Only https image URLs are accepted")

        fetched = await fetch_media(
            url,
            self.settings,
            self._transport,
            https_only=not self.settings.allow_insecure_image_urls,
        )
        if not fetched.content_type.startswith("image/"):
            logger.warning("URL %s returned %s instead of an image", url, fetched.content_type or "no content-type")
            raise NotAnImage(
                f"URL did not return an image (content-type: {fetched.content_type or 'missing'})",
                sample=fetched.content,
            )
        return fetched.content

    def reencode(self, data: bytes) -> NormalizedImage:
        """Downscale to the configured width and encode as JPEG at a fixed quality."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                img = ImageOps.exif_transpose(img)
                if img.mode != "RGB":
                    img = img.convert("RGB")

                max_width = self.settings.image_max_width
                if img.width > max_width:
                    height = max(1, round(img.height * max_width / img.width))
                    img = img.resize((max_width, height), Image.Resampling.LANCZOS)

                out = io.BytesIO()
                img.save(out, format="JPEG", quality=JPEG_QUALITY, optimize=True)
                width, height = img.size
        except Image.DecompressionBombError as exc:
            logger.warning("Refusing image over the decoder pixel limit: %s", exc)
            raise ImageTooLarge(
                "Image dimensions exceed the decoder pixel limit",
                details={"max_pixels": Image.MAX_IMAGE_PIXELS, "reason": str(exc)},
            ) from exc
        except (UnidentifiedImageError, OSError) as exc:
            raise NotAnImage("Could not decode image data", sample=data) from exc

        encoded = out.getvalue()
        if len(encoded) > self.settings.max_image_bytes:
            raise ImageTooLarge(
                f"Image is {len(encoded)} bytes after compression, limit is {self.settings.max_image_bytes}",
                details={"size": len(encoded), "limit": self.settings.max_image_bytes},
            )

        logger.debug("Normalized image to %dx%d, %d bytes", width, height, len(encoded))
        return NormalizedImage(data=encoded, width=width, height=height)
