"""Sequential batch helpers layered on ``ImageStoreClient``.

Each helper is a plain loop: one request at a time, in input order, with the
outcome of every item recorded instead of aborting the batch.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, TypeVar
from urllib.parse import quote

import structlog

from imgstore_client.core.exceptions import ImageStoreError
from imgstore_client.schemas.images import UploadResult
from imgstore_client.services.content_types import extension_for
from imgstore_client.services.image_store import ImageStoreClient

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class BatchOutcome(Generic[T]):
    key: str
    result: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str | None:
        if self.error is None:
            return None
        if isinstance(self.error, ImageStoreError):
            return self.error.detail
        return str(self.error)


def local_filename(image_id: str, content_type: str | None) -> str:
    """File name for a downloaded image, with the id quoted so it stays a single path component."""
    return f"{quote(image_id, safe='')}.{extension_for(content_type)}"


async def upload_many(client: ImageStoreClient, paths: Iterable[str | Path]) -> list[BatchOutcome[UploadResult]]:
    outcomes: list[BatchOutcome[UploadResult]] = []
    for path in paths:
        key = str(path)
        try:
            result = await client.upload_file(path)
        except (ImageStoreError, OSError, ValueError) as e:
            outcomes.append(BatchOutcome(key=key, error=e))
            continue
        outcomes.append(BatchOutcome(key=key, result=result))

    uploaded = sum(1 for o in outcomes if o.ok)
    logger.info("batch_upload_finished", uploaded=uploaded, total=len(outcomes))
    return outcomes


async def download_many(
    client: ImageStoreClient,
    image_ids: Iterable[str],
    output_dir: str | Path,
) -> list[BatchOutcome[Path]]:
    """Download each id into ``output_dir`` as ``<quoted id>.<ext>``, the extension taken from the content type."""
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    outcomes: list[BatchOutcome[Path]] = []
    for image_id in image_ids:
        try:
            image = await client.download(image_id)
        except (ImageStoreError, ValueError) as e:
            outcomes.append(BatchOutcome(key=image_id, error=e))
            continue
        dest = out_dir / local_filename(image_id, image.content_type)
        dest.write_bytes(image.data)
        outcomes.append(BatchOutcome(key=image_id, result=dest))

    downloaded = sum(1 for o in outcomes if o.ok)
    logger.info("batch_download_finished", downloaded=downloaded, total=len(outcomes))
    return outcomes
