"""Mapping of raw HTTP outcomes to typed results.

Every function here takes the status code, headers and body of a response
and either returns a typed value or raises an ``ImageStoreError`` subclass.
Nothing in this module performs I/O or depends on the HTTP library in use.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from imgstore_client.core.exceptions import AuthError, NotFoundError, ServerError
from imgstore_client.schemas.images import DownloadedImage, HealthStatus, ImageInfo, UploadResult
from imgstore_client.services.content_types import detect_mime_type

AUTH_FAILURE_CODES = frozenset({401, 403})


def is_success(status: int) -> bool:
    return 200 <= status < 300


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def _body_text(body: bytes, limit: int = 200) -> str:
    return body[:limit].decode("utf-8", errors="replace").strip()


def _parse_model(model: type[BaseModel], status: int, body: bytes) -> Any:
    try:
        return model.model_validate_json(body)
    except ValidationError as e:
        raise ServerError(status, body, detail=f"Invalid {model.__name__} payload: {e.error_count()} error(s)") from e


def _raise_for_auth(status: int, body: bytes) -> None:
    if status in AUTH_FAILURE_CODES:
        raise AuthError(status, detail=_body_text(body) or "Unauthorized")


def map_health(status: int, headers: Mapping[str, str], body: bytes) -> HealthStatus:
    if not is_success(status):
        raise ServerError(status, body)
    return _parse_model(HealthStatus, status, body)


def map_upload(status: int, headers: Mapping[str, str], body: bytes) -> UploadResult:
    _raise_for_auth(status, body)
    if not is_success(status):
        raise ServerError(status, body)
    return _parse_model(UploadResult, status, body)


def map_download(image_id: str, status: int, headers: Mapping[str, str], body: bytes) -> DownloadedImage:
    if status == 404:
        raise NotFoundError(image_id)
    if not is_success(status):
        raise ServerError(status, body)
    content_type = get_header(headers, "content-type") or detect_mime_type(body)
    return DownloadedImage(id=image_id, data=body, content_type=content_type)


def map_info(image_id: str, status: int, headers: Mapping[str, str]) -> ImageInfo:
    """HEAD outcome. A 404 is a valid answer ("absent"), not a failure."""
    if status == 404:
        return ImageInfo(id=image_id, exists=False)
    if not is_success(status):
        raise ServerError(status)
    return ImageInfo(
        id=image_id,
        exists=True,
        content_type=get_header(headers, "content-type"),
        content_length=_parse_length(get_header(headers, "content-length")),
    )


def map_delete(image_id: str, status: int, headers: Mapping[str, str], body: bytes) -> bool:
    """True when the image was removed, False when it was already gone."""
    _raise_for_auth(status, body)
    if status == 404:
        return False
    if not is_success(status):
        raise ServerError(status, body)
    return True


def _parse_length(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        length = int(value.strip())
    except ValueError:
        return None
    return length if length >= 0 else None
