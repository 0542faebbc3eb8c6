class ImageStoreError(Exception):
    """Base class for every failure reported by the image store client."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class TransportError(ImageStoreError):
    """The request never produced an HTTP response (connect, timeout, protocol)."""


class AuthError(ImageStoreError):
    def __init__(self, status_code: int, detail: str = "Unauthorized") -> None:
        self.status_code = status_code
        super().__init__(detail)


class NotFoundError(ImageStoreError):
    def __init__(self, image_id: str) -> None:
        self.image_id = image_id
        super().__init__(f"Image not found: {image_id}")


class ServerError(ImageStoreError):
    """Any unexpected response. Keeps the raw body for diagnostics."""

    def __init__(self, status_code: int, body: bytes = b"", detail: str | None = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(detail or f"Unexpected response {status_code}: {_preview(body)}")


def _preview(body: bytes, limit: int = 200) -> str:
    return body[:limit].decode("utf-8", errors="replace")
