"""
Product image transfer

Export direction: download the first image of a Stripe product into the local
image directory. Import direction: upload a local image to Stripe and turn it
into a public file-link URL that a product can reference.
"""
import logging
import re
import time
from pathlib import Path, PurePosixPath
from typing import Callable, Optional
from urllib.parse import urlparse

import requests

from .client import StripeClient
from .errors import ImageDownloadFailed, ImageMissing

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jpg"
FILE_LINK_MARKER = "files.stripe.com/links/"

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}
GENERIC_MIME_TYPE = "application/octet-stream"

CHUNK_SIZE = 8192


def sanitize_code(code: str) -> str:
    """Replace every character outside [A-Za-z0-9] with an underscore"""
    return re.sub(r"[^A-Za-z0-9]", "_", code)


def image_extension(url: str) -> str:
    """Extension of the URL's trailing path segment, .jpg when there is none"""
    if FILE_LINK_MARKER in url:
        return DEFAULT_EXTENSION
    segment = urlparse(url).path.rsplit("/", 1)[-1]
    suffix = PurePosixPath(segment).suffix.lower()
    if len(suffix) > 1:
        return suffix
    return DEFAULT_EXTENSION


def image_filename(code: str, extension: str, now: Optional[float] = None) -> str:
    """Local filename for a product image: sanitized code, or a timestamp without one"""
    if code:
        return f"{sanitize_code(code)}{extension}"
    millis = int((time.time() if now is None else now) * 1000)
    return f"product_{millis}{extension}"


def guess_mime_type(path: Path) -> str:
    return MIME_TYPES.get(Path(path).suffix.lower(), GENERIC_MIME_TYPE)


class ImageStore:
    """Moves product images between the local image directory and Stripe"""

    def __init__(
        self,
        client: StripeClient,
        image_dir: Path,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.image_dir = Path(image_dir)
        self.session = session or requests.Session()
        self.timeout = timeout
        self.clock = clock

    def download_image(self, url: str, code: str, dry_run: bool = False) -> str:
        """
        Stream a remote image into the image directory

        Returns the local filename. A failed download never leaves a partial
        file behind.
        """
        filename = image_filename(code, image_extension(url), self.clock())
        path = self.image_dir / filename

        if dry_run:
            logger.info(f"DRY RUN: Would download image from {url} to {path}")
            return filename

        logger.debug(f"Downloading image from {url} to {path}")
        self.image_dir.mkdir(parents=True, exist_ok=True)

        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                if not 200 <= response.status_code < 300:
                    raise ImageDownloadFailed(
                        f"Failed to download image {url}: HTTP status {response.status_code}",
                        code=code,
                    )
                with open(path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except ImageDownloadFailed:
            path.unlink(missing_ok=True)
            raise
        except (requests.exceptions.RequestException, OSError) as e:
            path.unlink(missing_ok=True)
            raise ImageDownloadFailed(f"Failed to download image {url}: {e}", code=code, cause=e)

        logger.info(f"Image downloaded successfully: {path}")
        return filename

    def publish_image(self, path: Path) -> str:
        """Upload a local image and return the public URL of its file-link"""
        path = Path(path)
        if not path.is_file():
            raise ImageMissing(f"Image file not found: {path}")
        if path.stat().st_size == 0:
            raise ImageMissing(f"Image file is empty: {path}")

        content = path.read_bytes()
        logger.debug(f"Read image file {path} ({len(content)} bytes)")

        file_id = self.client.upload_file(content, path.name, guess_mime_type(path))
        logger.info(f"Uploaded image to Stripe: {file_id}")

        url = self.client.create_file_link(file_id)
        logger.info(f"Created public file link: {url}")
        return url
