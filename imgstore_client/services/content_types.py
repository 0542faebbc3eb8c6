DEFAULT_MEDIA_TYPE = "application/octet-stream"

FORMAT_TO_EXT = {
    "jpeg": "jpg",
    "png": "png",
    "gif": "gif",
    "bmp": "bmp",
    "webp": "webp",
}

FORMAT_TO_MEDIA_TYPE = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
}

MEDIA_TYPE_TO_EXT = {media_type: FORMAT_TO_EXT[fmt] for fmt, media_type in FORMAT_TO_MEDIA_TYPE.items()}


def detect_image_format(image_bytes: bytes) -> str | None:
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "png"
    if image_bytes[:3] == b"\xff\xd8\xff":
        return "jpeg"
    if image_bytes[:6] in (b"GIF87a", b"GIF89a"):
        return "gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "webp"
    if image_bytes[:2] == b"BM":
        return "bmp"
    return None


def detect_mime_type(image_bytes: bytes) -> str:
    fmt = detect_image_format(image_bytes)
    if fmt is None:
        return DEFAULT_MEDIA_TYPE
    return FORMAT_TO_MEDIA_TYPE[fmt]


def extension_for(content_type: str | None) -> str:
    """File extension (without dot) for a Content-Type header value; "bin" when unknown."""
    if not content_type:
        return "bin"
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type == "image/jpg":
        return "jpg"
    return MEDIA_TYPE_TO_EXT.get(media_type, "bin")
