from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

from foodscan.core.config import settings
from foodscan.core.retailers import is_available_at_retailer

# Placeholder grades Open Food Facts uses when no score could be computed
INVALID_GRADES: frozenset[str] = frozenset({"", "UNKNOWN", "NOT-APPLICABLE", "NOT_APPLICABLE"})

REGION_COUNTRY_TAGS: frozenset[str] = frozenset(t.strip().lower() for t in settings.REGION_COUNTRY_TAGS)
REGION_PURCHASE_PLACE: str = settings.REGION_PURCHASE_PLACE

# Which grade field has to be valid for each kind of alternative list
NUTRITION_GRADE_FIELDS = ("nutrition_grades", "nutriscore_grade", "nutrition_grade_fr")
ECO_GRADE_FIELDS = ("ecoscore_grade",)


def is_valid_grade(grade: Optional[str]) -> bool:
    if grade is None:
        return False
    return str(grade).strip().upper() not in INVALID_GRADES


def is_available_in_region(
    countries_tags: Optional[Iterable[str]],
    purchase_places_tags: Optional[Iterable[str]],
) -> bool:
    for tag in countries_tags or ():
        if isinstance(tag, str) and tag.strip().lower() in REGION_COUNTRY_TAGS:
            return True
    return any(place == REGION_PURCHASE_PLACE for place in purchase_places_tags or ())


def derive_category_tag(categories_tags: Optional[Sequence[str]]) -> Optional[str]:
    """
    The most specific category is the last tag in the hierarchy.
    A single usable tag is returned as is.
    """
    useful = [t.strip() for t in categories_tags or () if isinstance(t, str) and t.strip()]
    if not useful:
        return None
    return useful[-1]


def first_grade(product: Dict[str, Any], fields: Sequence[str]) -> Optional[str]:
    for field in fields:
        value = product.get(field)
        if isinstance(value, str) and value.strip():
            return value
    return None


def filter_alternatives(
    candidates: Iterable[Dict[str, Any]],
    source_code: Optional[str],
    grade_fields: Sequence[str],
) -> List[Dict[str, Any]]:
    """
    Keep search results that are a real alternative to `source_code`:
    distributed in the region, sold at the retailer and carrying a usable grade.
    Input order is preserved.
    """
    out: List[Dict[str, Any]] = []
    for c in candidates:
        if not isinstance(c, dict):
            continue
        if source_code and c.get("code") == source_code:
            continue
        if not is_available_in_region(c.get("countries_tags"), c.get("purchase_places_tags")):
            continue
        if not is_available_at_retailer(c.get("stores_tags"), c.get("stores")):
            continue
        if not is_valid_grade(first_grade(c, grade_fields)):
            continue
        out.append(c)
    return out
