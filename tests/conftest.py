import hashlib
import secrets
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass, field

import httpx
import pytest
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from imgstore_client.core.credentials import ApiKey, BearerToken
from imgstore_client.services.image_store import ImageStoreClient

API_KEY = "test-api-key"
BASE_URL = "http://img-store.test"


class AppError(Exception):
    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail


@dataclass
class FakeImageStore:
    """In-process stand-in for the img-store server.

    Ids are content hashes, so uploading the same bytes twice answers
    200/"exists" instead of 201/"uploaded". Errors are plain text bodies.
    """

    api_key: str | None = API_KEY
    images: dict[str, bytes] = field(default_factory=dict)
    app: FastAPI = field(init=False)

    def __post_init__(self) -> None:
        self.app = _create_app(self)

    def transport(self) -> httpx.AsyncBaseTransport:
        return httpx.ASGITransport(app=self.app)


def _content_type(data: bytes) -> str:
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    return "application/octet-stream"


def _create_app(store: FakeImageStore) -> FastAPI:
    app = FastAPI()

    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError) -> PlainTextResponse:
        return PlainTextResponse(exc.detail, status_code=exc.status_code)

    def _require_auth(request: Request) -> None:
        if store.api_key is None:
            return
        provided = request.headers.get("x-api-key")
        authorization = request.headers.get("authorization")
        if authorization and authorization.startswith("Bearer "):
            provided = authorization[len("Bearer ") :].strip()
        if not provided or not secrets.compare_digest(provided, store.api_key):
            raise AppError(status_code=401, detail="Unauthorized")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy", "service": "img-store"}

    @app.post("/images")
    async def upload_image(request: Request) -> JSONResponse:
        _require_auth(request)
        data = await request.body()
        if not data:
            raise AppError(status_code=400, detail="Empty image data")

        image_id = hashlib.sha256(data).hexdigest()[:16]
        if image_id in store.images:
            return JSONResponse({"id": image_id, "status": "exists"}, status_code=200)
        store.images[image_id] = data
        return JSONResponse({"id": image_id, "status": "uploaded", "size": len(data)}, status_code=201)

    @app.get("/images/{image_id}")
    async def get_image(image_id: str) -> Response:
        data = store.images.get(image_id)
        if data is None:
            raise AppError(status_code=404, detail="Image not found")
        return Response(content=data, media_type=_content_type(data))

    @app.head("/images/{image_id}")
    async def head_image(image_id: str) -> Response:
        data = store.images.get(image_id)
        if data is None:
            raise AppError(status_code=404, detail="Image not found")
        return Response(headers={"content-type": _content_type(data), "content-length": str(len(data))})

    @app.delete("/images/{image_id}")
    async def delete_image(image_id: str, request: Request) -> dict[str, str]:
        _require_auth(request)
        if store.images.pop(image_id, None) is None:
            raise AppError(status_code=404, detail="Image not found")
        return {"id": image_id, "status": "deleted"}

    return app


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


@pytest.fixture
def fake_store() -> FakeImageStore:
    return FakeImageStore()


@pytest.fixture
async def client(fake_store: FakeImageStore) -> AsyncIterator[ImageStoreClient]:
    c = ImageStoreClient(BASE_URL, BearerToken(API_KEY), transport=fake_store.transport())
    yield c
    await c.aclose()


@pytest.fixture
async def api_key_client(fake_store: FakeImageStore) -> AsyncIterator[ImageStoreClient]:
    c = ImageStoreClient(BASE_URL, ApiKey(API_KEY), transport=fake_store.transport())
    yield c
    await c.aclose()


@pytest.fixture
async def anon_client(fake_store: FakeImageStore) -> AsyncIterator[ImageStoreClient]:
    c = ImageStoreClient(BASE_URL, transport=fake_store.transport())
    yield c
    await c.aclose()
