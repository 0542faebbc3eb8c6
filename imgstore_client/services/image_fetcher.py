from io import BytesIO

import httpx
import structlog
from PIL import Image

from imgstore_client.config import settings
from imgstore_client.core.exceptions import ServerError, TransportError
from imgstore_client.services.responses import get_header, is_success

logger = structlog.get_logger()

_client: httpx.AsyncClient | None = None


def get_http_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        _client = httpx.AsyncClient(
            timeout=settings.fetch_timeout,
            headers={"User-Agent": settings.user_agent},
            follow_redirects=True,
        )
    return _client


def resize_image(image_bytes: bytes, max_size: int) -> bytes:
    """Downscale so neither side exceeds ``max_size``; re-encodes as JPEG only when resizing."""
    try:
        img = Image.open(BytesIO(image_bytes))
        width, height = img.size
        if width <= max_size and height <= max_size:
            return image_bytes
        if img.mode in ("RGBA", "P", "LA"):
            img = img.convert("RGB")
        if width > height:
            new_width = max_size
            new_height = max(1, int(height * max_size / width))
        else:
            new_height = max_size
            new_width = max(1, int(width * max_size / height))
        img = img.resize((new_width, new_height), Image.Resampling.LANCZOS)
        buffer = BytesIO()
        img.save(buffer, format="JPEG", quality=85, optimize=True)
        return buffer.getvalue()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.warning("image_resize_skipped", error=str(e))
        return image_bytes


async def fetch_image(url: str, max_size: int | None = None, max_bytes: int | None = None) -> bytes:
    """Download an image from an arbitrary URL, bounded by ``max_bytes``.

    ``max_bytes`` defaults to ``max_upload_bytes`` from settings.

    Raises ``TransportError`` when the remote host cannot be reached and
    ``ServerError`` on a non-2xx answer. ``max_size`` (or ``fetch_max_size``
    from settings) enables downscaling of the fetched image.
    """
    client = get_http_client()
    limit = max_bytes if max_bytes is not None else settings.max_upload_bytes
    try:
        async with client.stream("GET", url) as response:
            if not is_success(response.status_code):
                body = await response.aread()
                logger.error("image_fetch_failed", url=url, status=response.status_code)
                raise ServerError(response.status_code, body, detail=f"Fetching {url} returned {response.status_code}")

            declared = get_header(response.headers, "content-length")
            if declared is not None and declared.isdigit() and int(declared) > limit:
                raise ValueError(f"Remote image too large: {declared} > {limit} bytes")

            chunks: list[bytes] = []
            total = 0
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > limit:
                    raise ValueError(f"Remote image exceeds {limit} bytes")
                chunks.append(chunk)
    except httpx.RequestError as e:
        logger.error("image_fetch_failed", url=url, error=str(e))
        raise TransportError(f"Fetching {url} failed: {e}") from e

    data = b"".join(chunks)
    bound = max_size if max_size is not None else settings.fetch_max_size
    if bound:
        data = resize_image(data, bound)
    logger.info("image_fetched", url=url, size=len(data))
    return data


async def close_client() -> None:
    global _client
    if _client:
        await _client.aclose()
        _client = None
