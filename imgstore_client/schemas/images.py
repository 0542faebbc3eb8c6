from pydantic import BaseModel, ConfigDict, Field


class HealthStatus(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: str
    service: str | None = None


class UploadResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    status: str | None = None
    size: int | None = None


class DownloadedImage(BaseModel):
    id: str
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


class ImageInfo(BaseModel):
    id: str
    exists: bool
    content_type: str | None = None
    content_length: int | None = None
