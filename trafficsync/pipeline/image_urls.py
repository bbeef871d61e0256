"""Image URL normalisation for camera feeds."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from trafficsync.common.constants import (
    BASE_TRAFFIC_URL,
    CANONICAL_HTTPS_ORIGIN,
    CANONICAL_IMAGE_HOST,
    IMAGE_DIRECTORY_PATH,
)

_BARE_IMAGE_RE = re.compile(r"^\d+\.jpg$")
_CANONICAL_HOSTS = {CANONICAL_IMAGE_HOST, f"www.{CANONICAL_IMAGE_HOST}"}


def _image_directory_url(name: str) -> str:
    return f"{BASE_TRAFFIC_URL}{IMAGE_DIRECTORY_PATH}{name}"


def _on_canonical_host(url: str) -> bool:
    return (urlsplit(url).hostname or "") in _CANONICAL_HOSTS


def _upgrade_scheme(url: str) -> str:
    if url.startswith("http://"):
        return f"https://{url[len('http://'):]}"
    return url


def normalize_image_url(url: str | None) -> str:
    """Resolve a camera image reference to an absolute HTTPS URL.

    Rules, first match wins:

    1. absolute (or protocol-relative) URL off the canonical host: upgrade to https
    2. root-relative path: prefix the canonical base URL
    3. bare ``<digits>.jpg``: prefix the image directory
    4. any other relative string: prefix the image directory

    Plain-http URLs on the canonical host are rewritten to the canonical https
    origin afterwards. Missing references stay empty.
    """
    if not url:
        return ""
    url = url.strip()
    if not url:
        return ""

    is_absolute = url.startswith(("http://", "https://"))
    if url.startswith("//"):
        absolute_url = f"https:{url}"
    elif is_absolute and not _on_canonical_host(url):
        absolute_url = _upgrade_scheme(url)
    elif url.startswith("/"):
        absolute_url = f"{BASE_TRAFFIC_URL}{url}"
    elif _BARE_IMAGE_RE.match(url):
        absolute_url = _image_directory_url(url)
    elif not is_absolute:
        absolute_url = _image_directory_url(url)
    else:
        absolute_url = url

    if absolute_url.startswith("http://") and _on_canonical_host(absolute_url):
        parts = urlsplit(absolute_url)
        absolute_url = CANONICAL_HTTPS_ORIGIN + absolute_url.split(parts.netloc, 1)[1]
    return absolute_url
