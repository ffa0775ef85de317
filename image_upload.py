# image_upload.py
import base64
import logging

import requests

from config import IMGBB_API_KEY, IMGBB_UPLOAD_URL
from errors import ImageUploadError

logger = logging.getLogger(__name__)


def upload_to_imgbb(data: bytes, timeout: float = 25) -> str:
    """Send raw image bytes to the image host and return the hosted URL."""
    payload = {
        "key": IMGBB_API_KEY,
        "image": base64.b64encode(data).decode("ascii"),
    }
    try:
        r = requests.post(IMGBB_UPLOAD_URL, data=payload, timeout=timeout)
    except requests.RequestException as exc:
        logger.error("Image host unreachable: %s", exc)
        raise ImageUploadError("Image upload failed") from exc

    if r.status_code < 200 or r.status_code >= 300:
        logger.error("Image host returned HTTP %s", r.status_code)
        raise ImageUploadError("Image upload failed")

    try:
        url = ((r.json() or {}).get("data") or {}).get("url")
    except ValueError as exc:
        raise ImageUploadError("Image upload failed") from exc
    if not url:
        logger.error("Image host response had no URL")
        raise ImageUploadError("Image upload failed")
    return url
