from __future__ import annotations
from PIL import Image, UnidentifiedImageError
import io


ALLOWED_MIME = {"image/jpeg", "image/png", "image/webp"}
EXT_FOR_MIME = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}
MIME_FOR_FORMAT = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}

def sniff_mime(data: bytes) -> str | None:
    # Type is sniffed from the file header
    try:
        with Image.open(io.BytesIO(data)) as img:
            return MIME_FOR_FORMAT.get(img.format or "")
    except (UnidentifiedImageError, OSError):
        return None

def validate_image(data: bytes, max_bytes: int) -> str:
    """
    Returns the detected mime type of an uploaded image.
    Raises ValueError with a user-facing message when the upload is unusable.
    """
    if not data:
        raise ValueError("Screenshot is required")
    if len(data) > max_bytes:
        raise ValueError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")
    mime = sniff_mime(data)
    if mime not in ALLOWED_MIME:
        raise ValueError("Only JPEG, PNG, and WebP images are allowed")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()  # basic integrity
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValueError("Invalid image file")
    return mime

def ext_for_mime(mime: str) -> str:
    return EXT_FOR_MIME.get(mime, "bin")

def content_type_for_name(name: str) -> str:
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    for mime, e in EXT_FOR_MIME.items():
        if e == ext or (ext == "jpeg" and e == "jpg"):
            return mime
    return "application/octet-stream"
