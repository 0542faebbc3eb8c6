from imgstore_client.core.credentials import ApiKey, BearerToken, Credential
from imgstore_client.core.exceptions import AuthError, ImageStoreError, NotFoundError, ServerError, TransportError
from imgstore_client.schemas.images import DownloadedImage, HealthStatus, ImageInfo, UploadResult
from imgstore_client.services.image_store import ImageStoreClient

__all__ = [
    "ApiKey",
    "AuthError",
    "BearerToken",
    "Credential",
    "DownloadedImage",
    "HealthStatus",
    "ImageInfo",
    "ImageStoreClient",
    "ImageStoreError",
    "NotFoundError",
    "ServerError",
    "TransportError",
    "UploadResult",
]
