PDF = "application/pdf"
JPEG = "image/jpeg"
PNG = "image/png"

_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"%PDF", PDF),
    (b"\x89PNG\r\n\x1a\n", PNG),
    (b"\xff\xd8\xff", JPEG),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
    (b"BM", "image/bmp"),
)


def detect_mime_type(content: bytes, declared: str | None = None) -> str:
    """Identify the file type from its magic bytes, falling back to the declared type."""
    for signature, mime_type in _SIGNATURES:
        if content.startswith(signature):
            return mime_type
    return (declared or "application/octet-stream").lower()
