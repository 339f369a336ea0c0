from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from foodscan.core.filters import ECO_GRADE_FIELDS, NUTRITION_GRADE_FIELDS, first_grade, is_valid_grade
from foodscan.core.images import allowed_image_url


def _tags(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [t for t in value if isinstance(t, str)]


def _grade(p: Dict[str, Any], fields) -> Optional[str]:
    """Same field order as the alternative filters; placeholder grades become None."""
    value = first_grade(p, fields)
    if not is_valid_grade(value):
        return None
    return value.strip().upper()


def category_labels(categories_tags: List[str]) -> Optional[str]:
    """
    "en:plant-based-foods, en:spreads" => "plant-based-foods, spreads"
    """
    labels = [t.split(":")[-1] for t in categories_tags]
    joined = ", ".join(label for label in labels if label)
    return joined or None


class ProductView(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    brands: Optional[str] = None
    categories: Optional[str] = None
    nutrition_grade: Optional[str] = None   # "A".."E"
    ecoscore_grade: Optional[str] = None
    image_url: Optional[str] = None
    categories_tags: List[str] = []
    countries_tags: List[str] = []
    purchase_places_tags: List[str] = []
    stores_tags: List[str] = []
    stores: Optional[str] = None

    @classmethod
    def from_product(cls, p: Dict[str, Any]) -> "ProductView":
        categories_tags = _tags(p.get("categories_tags"))
        return cls(
            code=p.get("code"),
            name=p.get("product_name_de") or p.get("product_name") or None,
            brands=p.get("brands") or None,
            categories=category_labels(categories_tags),
            nutrition_grade=_grade(p, NUTRITION_GRADE_FIELDS),
            ecoscore_grade=_grade(p, ECO_GRADE_FIELDS),
            image_url=allowed_image_url(p.get("image_front_url")),
            categories_tags=categories_tags,
            countries_tags=_tags(p.get("countries_tags")),
            purchase_places_tags=_tags(p.get("purchase_places_tags")),
            stores_tags=_tags(p.get("stores_tags")),
            stores=p.get("stores") or None,
        )
