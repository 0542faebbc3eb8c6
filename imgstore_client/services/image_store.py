from pathlib import Path
from types import TracebackType
from urllib.parse import quote

import httpx
import structlog

from imgstore_client.config import Settings, settings
from imgstore_client.core.credentials import Credential, auth_headers, credential_from_settings
from imgstore_client.core.exceptions import ImageStoreError, TransportError
from imgstore_client.schemas.images import DownloadedImage, HealthStatus, ImageInfo, UploadResult
from imgstore_client.services import image_fetcher, responses
from imgstore_client.services.content_types import detect_mime_type

logger = structlog.get_logger()

HEALTH_PATH = "/health"
IMAGES_PATH = "/images"


def _require_image_id(image_id: str) -> str:
    if not image_id:
        raise ValueError("image_id must be a non-empty string")
    # dot segments are collapsed by URL normalization even when quoted
    if image_id in (".", ".."):
        raise ValueError(f"image_id may not be a dot segment: {image_id!r}")
    return image_id


def _read_file_bounded(path: Path, max_bytes: int) -> bytes:
    size = path.stat().st_size
    if size > max_bytes:
        raise ValueError(f"File too large for upload: {size} > {max_bytes} bytes")
    data = path.read_bytes()
    if len(data) > max_bytes:
        raise ValueError(f"File too large for upload: {len(data)} > {max_bytes} bytes")
    return data


class ImageStoreClient:
    """Async client for the img-store HTTP API.

    Health, download and HEAD lookups are public. Upload and delete carry the
    configured credential (one header, bearer or API key). No request is ever
    retried: every failure is raised as an ``ImageStoreError`` subclass.

    The client holds no per-call state, so one instance may serve many
    concurrent calls.
    """

    def __init__(
        self,
        base_url: str,
        credential: Credential | None = None,
        *,
        timeout: float | None = 30.0,
        max_upload_bytes: int = 25 * 1024 * 1024,
        user_agent: str = "imgstore-client/0.1",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._credential = credential
        self.max_upload_bytes = max_upload_bytes
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": user_agent},
        )

    @classmethod
    def from_settings(
        cls,
        source: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ImageStoreClient":
        source = source or settings
        return cls(
            source.base_url,
            credential_from_settings(source),
            timeout=source.request_timeout,
            max_upload_bytes=source.max_upload_bytes,
            user_agent=source.user_agent,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def credential(self) -> Credential | None:
        return self._credential

    def image_url(self, image_id: str) -> str:
        return f"{self._base_url}{self._image_path(image_id)}"

    async def check_health(self, *, timeout: float | None = None) -> HealthStatus:
        response = await self._send("GET", HEALTH_PATH, timeout=timeout)
        try:
            return responses.map_health(response.status_code, response.headers, response.content)
        except ImageStoreError as e:
            logger.error("health_check_failed", error=e.detail)
            raise

    async def upload(
        self,
        data: bytes,
        *,
        content_type: str | None = None,
        timeout: float | None = None,
    ) -> UploadResult:
        if not data:
            raise ValueError("Cannot upload empty image data")
        if len(data) > self.max_upload_bytes:
            raise ValueError(f"Image too large for upload: {len(data)} > {self.max_upload_bytes} bytes")

        headers = {"Content-Type": content_type or detect_mime_type(data)}
        headers.update(auth_headers(self._credential))
        response = await self._send("POST", IMAGES_PATH, content=data, headers=headers, timeout=timeout)
        try:
            result = responses.map_upload(response.status_code, response.headers, response.content)
        except ImageStoreError as e:
            logger.error("image_upload_failed", size=len(data), error=e.detail)
            raise
        logger.info("image_uploaded", image_id=result.id, size=len(data), status=result.status)
        return result

    async def upload_file(self, path: str | Path, *, timeout: float | None = None) -> UploadResult:
        data = _read_file_bounded(Path(path), self.max_upload_bytes)
        return await self.upload(data, timeout=timeout)

    async def upload_from_url(
        self,
        url: str,
        *,
        max_size: int | None = None,
        timeout: float | None = None,
    ) -> UploadResult:
        data = await image_fetcher.fetch_image(url, max_size=max_size, max_bytes=self.max_upload_bytes)
        return await self.upload(data, timeout=timeout)

    async def download(self, image_id: str, *, timeout: float | None = None) -> DownloadedImage:
        response = await self._send("GET", self._image_path(image_id), timeout=timeout)
        try:
            image = responses.map_download(image_id, response.status_code, response.headers, response.content)
        except ImageStoreError as e:
            logger.error("image_download_failed", image_id=image_id, error=e.detail)
            raise
        logger.info("image_downloaded", image_id=image_id, size=image.size, content_type=image.content_type)
        return image

    async def download_to_file(self, image_id: str, dest: str | Path, *, timeout: float | None = None) -> Path:
        image = await self.download(image_id, timeout=timeout)
        dest_path = Path(dest)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        dest_path.write_bytes(image.data)
        return dest_path

    async def get_info(self, image_id: str, *, timeout: float | None = None) -> ImageInfo:
        response = await self._send("HEAD", self._image_path(image_id), timeout=timeout)
        try:
            return responses.map_info(image_id, response.status_code, response.headers)
        except ImageStoreError as e:
            logger.error("image_info_failed", image_id=image_id, error=e.detail)
            raise

    async def exists(self, image_id: str, *, timeout: float | None = None) -> bool:
        info = await self.get_info(image_id, timeout=timeout)
        return info.exists

    async def delete(self, image_id: str, *, timeout: float | None = None) -> bool:
        """Delete an image. Returns False when it was already absent."""
        path = self._image_path(image_id)
        response = await self._send("DELETE", path, headers=auth_headers(self._credential), timeout=timeout)
        try:
            deleted = responses.map_delete(image_id, response.status_code, response.headers, response.content)
        except ImageStoreError as e:
            logger.error("image_delete_failed", image_id=image_id, error=e.detail)
            raise
        if deleted:
            logger.info("image_deleted", image_id=image_id)
        else:
            logger.info("image_already_absent", image_id=image_id)
        return deleted

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ImageStoreClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def _image_path(self, image_id: str) -> str:
        return f"{IMAGES_PATH}/{quote(_require_image_id(image_id), safe='')}"

    async def _send(
        self,
        method: str,
        path: str,
        *,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        request_timeout = httpx.USE_CLIENT_DEFAULT if timeout is None else timeout
        try:
            return await self._http.request(method, path, content=content, headers=headers, timeout=request_timeout)
        except httpx.RequestError as e:
            logger.error("image_store_unreachable", method=method, path=path, error=str(e))
            raise TransportError(f"{method} {path} failed: {e}") from e
