from fnmatch import fnmatch
from typing import Optional
from urllib.parse import urlsplit

from foodscan.core.config import settings


def is_allowed_image_url(url: Optional[str]) -> bool:
    """
    Only product images served over https from the configured image host
    (e.g. https://images.openfoodfacts.org/images/products/...) are passed on.
    """
    if not url:
        return False
    parts = urlsplit(url.strip())
    if parts.scheme != "https":
        return False
    if (parts.hostname or "").lower() != settings.IMAGE_HOST.lower():
        return False
    return fnmatch(parts.path, settings.IMAGE_PATH_PATTERN)


def allowed_image_url(url: Optional[str]) -> Optional[str]:
    return url.strip() if url and is_allowed_image_url(url) else None
