from __future__ import annotations

from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .errors import InvalidImageError


def ensure_image(payload: bytes) -> str:
    """Return the Pillow format name of ``payload`` or raise InvalidImageError.

    The bytes are stored as received; this only rejects content that is not
    a readable image.
    """
    if not payload:
        raise InvalidImageError("image payload is empty")

    try:
        with Image.open(BytesIO(payload)) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise InvalidImageError(f"unreadable image payload: {exc}") from exc

    return image_format or "unknown"
