import logging
from dataclasses import dataclass

import httpx

from app.config import Settings
from app.errors import InvalidInput, PayloadTooLarge, UpstreamError, body_sample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedMedia:
    url: str
    content_type: str
    content: bytes


async def _refuse_plain_http(request: httpx.Request) -> None:
    # runs before every hop, redirects included
    if request.url.scheme != "https":
        logger.warning("Refusing non-https request to %s", request.url)
        raise InvalidInput(f"Only https URLs are accepted, redirected to {request.url}")


def http_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
    https_only: bool = False,
) -> httpx.AsyncClient:
    hooks = {"request": [_refuse_plain_http]} if https_only else {}
    return httpx.AsyncClient(
        timeout=settings.http_timeout,
        follow_redirects=True,
        transport=transport,
        event_hooks=hooks,
    )


async def fetch_media(
    url: str,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
    https_only: bool = False,
) -> FetchedMedia:
    """Download a media file, refusing bodies over the download budget.

    With `https_only`, every hop of a redirect chain must stay on https.
    """
    limit = settings.max_download_bytes
    try:
        async with http_client(settings, transport, https_only) as client:
            async with client.stream("GET", url) as resp:
                if resp.status_code >= 400:
                    body = await resp.aread()
                    logger.error("Media fetch failed (%s) for %s: %s", resp.status_code, url, body_sample(body))
                    raise UpstreamError(
                        f"Could not download media ({resp.status_code})",
                        details=body_sample(body),
                    )

                declared = resp.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > limit:
                    raise PayloadTooLarge(f"Media exceeds {limit} bytes", details={"size": int(declared)})

                chunks = bytearray()
                async for chunk in resp.aiter_bytes():
                    chunks.extend(chunk)
                    if len(chunks) > limit:
                        raise PayloadTooLarge(f"Media exceeds {limit} bytes")

                content_type = resp.headers.get("content-type", "")
    except httpx.HTTPError as exc:
        logger.error("Media fetch error for %s: %s", url, exc)
        raise UpstreamError("Could not download media", details=str(exc)) from exc

    return FetchedMedia(url=url, content_type=content_type.split(";")[0].strip().lower(), content=bytes(chunks))
