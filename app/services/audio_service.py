import asyncio
import logging
import os
import re
import subprocess
import tempfile
from pathlib import Path
from typing import BinaryIO
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import httpx

from app.config import Settings
from app.errors import InvalidInput, NotAudio, PayloadTooLarge, TranscodeFailed
from app.schemas.media import MediaReference
from app.services.fetch import fetch_media
from app.services.image_service import decode_base64, split_data_url

logger = logging.getLogger(__name__)

_DRIVE_FILE = re.compile(r"/file/d/(?P<id>[\w-]+)")

_EXTENSIONS = {
    "audio/wav": ".wav",
    "audio/ogg": ".ogg",
    "audio/mpeg": ".mp3",
    "audio/aac": ".aac",
    "audio/flac": ".flac",
    "audio/amr": ".amr",
    "audio/mp4": ".m4a",
    "audio/x-ms-wma": ".wma",
    "video/mp4": ".mp4",
    "video/3gpp": ".3gp",
    "video/quicktime": ".mov",
    "video/webm": ".webm",
    "video/x-msvideo": ".avi",
}


def rewrite_share_link(url: str) -> str:
    """Turn cloud-drive share pages into direct download URLs."""
    parsed = urlparse(url)
    host = parsed.netloc.lower()
    query = parse_qs(parsed.query)

    if host == "drive.google.com":
        match = _DRIVE_FILE.search(parsed.path)
        file_id = match.group("id") if match else (query.get("id") or [None])[0]
        if file_id:
            return f"https://drive.google.com/uc?export=download&id={file_id}"
        return url

    if host in ("www.dropbox.com", "dropbox.com"):
        query["dl"] = ["1"]
        return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))

    if host in ("1drv.ms", "onedrive.live.com") and "download" not in query:
        query["download"] = ["1"]
        return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))

    return url


def sniff_media_type(data: bytes) -> str | None:
    """Detect audio/video containers from their leading bytes."""
    head = data[:64]
    if len(head) < 4:
        return None
    if head[:4] == b"RIFF" and head[8:12] == b"WAVE":
        return "audio/wav"
    if head[:4] == b"RIFF" and head[8:12] == b"AVI ":
        return "video/x-msvideo"
    if head[:4] == b"OggS":
        return "audio/ogg"
    if head[:4] == b"fLaC":
        return "audio/flac"
    if head[:3] == b"ID3":
        return "audio/mpeg"
    if head[:5] == b"#!AMR":
        return "audio/amr"
    if head[:4] == b"\x1a\x45\xdf\xa3":
        return "video/webm"
    if head[:4] == b"\x30\x26\xb2\x75":
        return "audio/x-ms-wma"
    if head[4:8] == b"ftyp":
        brand = head[8:12]
        if brand in (b"M4A ", b"M4B ", b"M4P "):
            return "audio/mp4"
        if brand.startswith(b"3g"):
            return "video/3gpp"
        if brand == b"qt  ":
            return "video/quicktime"
        return "video/mp4"
    if head[0] == 0xFF and head[1] & 0xF6 == 0xF0:
        return "audio/aac"
    if head[0] == 0xFF and head[1] & 0xE0 == 0xE0:
        return "audio/mpeg"
    return None


def _is_media(content_type: str | None) -> bool:
    return bool(content_type) and content_type.startswith(("audio/", "video/"))


def _remove(path: Path | None) -> None:
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.debug("Could not remove temp file %s", path)


class NormalizedAudio:
    """A mono PCM WAV on disk that must be disposed after use."""

    def __init__(self, path: Path, sample_rate: int, channels: int = 1):
        self.path = path
        self.sample_rate = sample_rate
        self.channels = channels
        self._disposed = False

    def open(self) -> BinaryIO:
        return self.path.open("rb")

    def dispose(self) -> None:
        if not self._disposed:
            _remove(self.path)
            self._disposed = True

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __enter__(self) -> "NormalizedAudio":
        return self

    def __exit__(self, *exc) -> None:
        self.dispose()


class AudioService:
    """Fetch or decode audio/video and transcode it to 16 kHz mono WAV with ffmpeg."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    async def normalize(self, ref: MediaReference, filename: str | None = None) -> NormalizedAudio:
        if ref.is_url:
            data, media_type = await self._fetch(ref.value)
        else:
            declared, payload = split_data_url(ref.value)
            data = decode_base64(payload)
            if len(data) > self.settings.max_download_bytes:
                raise PayloadTooLarge(f"Audio exceeds {self.settings.max_download_bytes} bytes")
            media_type = sniff_media_type(data) or (declared if _is_media(declared) else None)
            if media_type is None and declared and not _is_media(declared):
                raise NotAudio(f"Inline payload declares {declared}, expected audio", sample=data)

        suffix = _EXTENSIONS.get(media_type or "") or Path(filename or "").suffix or ".bin"
        return await self.transcode(data, suffix)

    async def _fetch(self, url: str) -> tuple[bytes, str]:
        scheme = urlparse(url).scheme.lower()
        if scheme not in ("http", "https"):
            raise InvalidInput(f"Unsupported audio URL scheme: {scheme or 'none'}")

        direct = rewrite_share_link(url)
        if direct != url:
            logger.info("Rewrote share link %s -> %s", url, direct)

        fetched = await fetch_media(direct, self.settings, self._transport)
        # upstream content-type headers are often wrong, trust the bytes first
        sniffed = sniff_media_type(fetched.content)
        if sniffed:
            return fetched.content, sniffed
        if _is_media(fetched.content_type):
            return fetched.content, fetched.content_type

        logger.warning("URL %s returned %s, not audio", direct, fetched.content_type or "no content-type")
        raise NotAudio(
            f"URL did not return audio or video (content-type: {fetched.content_type or 'missing'})",
            sample=fetched.content,
        )

    async def transcode(self, data: bytes, suffix: str = ".bin") -> NormalizedAudio:
        """Write `data` to a temp file and convert it; the input file never outlives this call."""
        src_path: Path | None = None
        out_path: Path | None = None
        try:
            fd, name = tempfile.mkstemp(suffix=suffix, prefix="gw-in-")
            src_path = Path(name)
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)

            fd, name = tempfile.mkstemp(suffix=".wav", prefix="gw-out-")
            os.close(fd)
            out_path = Path(name)

            await self._run_ffmpeg(src_path, out_path)

            if not out_path.exists() or out_path.stat().st_size == 0:
                raise TranscodeFailed("ffmpeg produced no audio")

            audio = NormalizedAudio(out_path, self.settings.audio_sample_rate)
            out_path = None  # ownership moves to the handle
            return audio
        finally:
            _remove(src_path)
            _remove(out_path)

    async def _run_ffmpeg(self, src: Path, dest: Path) -> None:
        cmd = [
            self.settings.ffmpeg_binary,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            "-i", str(src),
            "-vn",
            "-acodec", "pcm_s16le",
            "-ar", str(self.settings.audio_sample_rate),
            "-ac", "1",
            str(dest),
        ]
        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=self.settings.transcode_timeout,
            )
        except FileNotFoundError as exc:
            logger.error("ffmpeg not found at %s", self.settings.ffmpeg_binary)
            raise TranscodeFailed("ffmpeg is not available") from exc
        except subprocess.TimeoutExpired as exc:
            logger.error("ffmpeg timed out after %ss", self.settings.transcode_timeout)
            raise TranscodeFailed("Audio transcoding timed out") from exc

        if result.returncode != 0:
            logger.error("ffmpeg audio transcode failed: %s", result.stderr[:500])
            raise TranscodeFailed("Audio transcoding failed", details=result.stderr[-500:].strip() or None)
