import base64
import binascii
import logging
import re
import secrets
from pathlib import Path
from typing import Optional

from app.config import get_settings
from app.core.clock import Clock, system_clock
from app.core.constants import PRODUCT_IMAGE_DIR, PRODUCT_IMAGE_URL_PREFIX
from app.core.errors import ValidationFailure

logger = logging.getLogger(__name__)

_IMAGE_DIR = PRODUCT_IMAGE_DIR
_DATA_URI_RE = re.compile(r"^data:image/(?P<kind>[a-zA-Z0-9.+-]+);base64,(?P<data>.+)$", re.DOTALL)
_IMAGE_EXTENSIONS = {
    "png": ".png",
    "jpeg": ".jpg",
    "jpg": ".jpg",
    "gif": ".gif",
    "webp": ".webp",
    "svg+xml": ".svg",
}


def is_data_uri(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("data:image")


def _image_extension(kind: str) -> str:
    return _IMAGE_EXTENSIONS.get(kind.lower(), ".png")


def save_data_uri(value: str, *, clock: Clock = system_clock) -> str:
    """Decode a ``data:image/...;base64,`` string into the product image
    directory and return the URL path it is served from."""
    match = _DATA_URI_RE.match(value.strip())
    if not match:
        raise ValidationFailure("image_url must be a base64 data:image URI.")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationFailure("image_url is not valid base64 data.") from exc
    if not data:
        raise ValidationFailure("image_url is empty.")
    if len(data) > get_settings().PRODUCT_IMAGE_MAX_BYTES:
        raise ValidationFailure("image_url exceeds the maximum image size.")

    filename = "product_{}_{}{}".format(
        int(clock.now().timestamp()),
        secrets.token_hex(6),
        _image_extension(match.group("kind")),
    )
    _IMAGE_DIR.mkdir(parents=True, exist_ok=True)
    (_IMAGE_DIR / filename).write_bytes(data)
    logger.info("Stored product image %s (%d bytes)", filename, len(data))
    return "{}/{}".format(PRODUCT_IMAGE_URL_PREFIX, filename)


def delete_image(image_url: Optional[str]) -> None:
    if not image_url or not image_url.startswith(PRODUCT_IMAGE_URL_PREFIX + "/"):
        return
    path = _IMAGE_DIR / Path(image_url).name
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError:
        logger.warning("Unable to delete product image %s", path)


__all__ = ["delete_image", "is_data_uri", "save_data_uri"]
