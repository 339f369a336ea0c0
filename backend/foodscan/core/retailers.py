from __future__ import annotations

from typing import Iterable, List, Optional

from foodscan.core.config import settings

# Store tags that count as "sold at the target chain"
RETAILER_SLUGS: frozenset[str] = frozenset(s.strip().lower() for s in settings.RETAILER_SLUGS)

# Fragment looked for in the free-text "stores" field
RETAILER_BRAND_FRAGMENT: str = settings.RETAILER_BRAND_FRAGMENT.strip().lower()


def normalize_store_tag(tag: Optional[str]) -> str:
    """
    Strip the locale namespace and lower-case a store tag:
      - "ch:coop-pronto" => "coop-pronto"
      - "en:Coop"        => "coop"
      - "coop"           => "coop"
    """
    if not tag:
        return ""
    return tag.rsplit(":", 1)[-1].strip().lower()


def store_names(stores: Optional[str]) -> List[str]:
    """
    Split the free-text stores field ("Coop, Manor") into trimmed names.
    Empty pieces are dropped.
    """
    if not stores:
        return []
    return [part.strip() for part in stores.split(",") if part.strip()]


def is_available_at_retailer(
    stores_tags: Optional[Iterable[str]],
    stores: Optional[str],
) -> bool:
    """
    Structured store tags are checked first. Store attribution in Open Food Facts
    is often only present as free text, so we fall back to a substring match there.
    """
    for tag in stores_tags or ():
        if normalize_store_tag(tag) in RETAILER_SLUGS:
            return True

    return any(RETAILER_BRAND_FRAGMENT in name.lower() for name in store_names(stores))
