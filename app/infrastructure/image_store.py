"""Resolution proof images — stored on disk, referenced from the complaint.

The web client captures proof as a base64 data URI. The bytes are written under
UPLOAD_DIR and the complaint keeps only the returned reference.
"""

import base64
import binascii
import os
import re
import uuid

import structlog

from app.config import get_settings
from app.core.exceptions import InvalidArgumentException

settings = get_settings()
logger = structlog.get_logger(__name__)

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024
DATA_URI_RE = re.compile(r"^data:image/(?P<ext>[a-zA-Z0-9.+-]+);base64,(?P<data>.+)$", re.DOTALL)


class ResolutionImageStore:
    def __init__(self, base_dir: str | None = None):
        self.base_dir = os.path.join(base_dir or settings.UPLOAD_DIR, "resolutions")

    def save(self, complaint_id: str, content: bytes, extension: str) -> str:
        """Write image bytes and return the reference stored on the complaint."""
        ext = extension.lower().lstrip(".")
        if ext not in ALLOWED_EXTENSIONS:
            raise InvalidArgumentException(
                f"Unsupported image type: {ext or 'unknown'}",
                details={"allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        if not content:
            raise InvalidArgumentException("Resolution image is empty")
        if len(content) > MAX_IMAGE_BYTES:
            raise InvalidArgumentException("Resolution image exceeds 5 MB")

        os.makedirs(self.base_dir, exist_ok=True)
        safe_id = re.sub(r"[^A-Za-z0-9_-]", "_", complaint_id)
        filename = f"{safe_id}_{uuid.uuid4().hex}.{ext}"
        path = os.path.join(self.base_dir, filename)
        with open(path, "wb") as f:
            f.write(content)

        logger.info("Resolution image stored", complaint_id=complaint_id, path=path, size=len(content))
        return path

    def store_reference(self, complaint_id: str, image: str) -> str:
        """Decode data URIs to files; any other string is already a reference."""
        match = DATA_URI_RE.match(image.strip())
        if not match:
            return image
        try:
            content = base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidArgumentException("Resolution image is not valid base64") from e
        return self.save(complaint_id, content, match.group("ext"))

    def discard(self, reference: str) -> None:
        """Remove an image this store wrote, e.g. when the status update it belonged to failed."""
        path = os.path.abspath(reference)
        if os.path.dirname(path) != os.path.abspath(self.base_dir):
            return
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        logger.info("Resolution image discarded", path=path)
