"""Food item catalog management."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from dinein.db.models import FOOD_TYPES, FoodItem, FoodVariant, Restaurant
from dinein.errors import Conflict, NotFound, ValidationFailed
from dinein.services.entitlements import enforce_quota

logger = logging.getLogger(__name__)

MAX_VARIANTS = 6
MAX_IMAGES = 5


@dataclass
class VariantSpec:
    variant_name: str
    price: int
    discounted_price: Optional[int] = None
    description: Optional[str] = None
    is_available: bool = True


@dataclass
class FoodItemSpec:
    """A food item as submitted by the owner; prices in minor units."""
    food_name: str
    price: int
    food_type: str
    discounted_price: Optional[int] = None
    has_variants: bool = False
    variants: List[VariantSpec] = field(default_factory=list)
    category: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    image_urls: List[str] = field(default_factory=list)


def _has_duplicates(values) -> bool:
    values = list(values)
    return len(values) != len(set(values))


def validate_food_item(spec: FoodItemSpec, restaurant: Restaurant) -> None:
    if not spec.food_name or not spec.food_name.strip():
        raise ValidationFailed("Food name is required")
    if spec.food_type not in FOOD_TYPES:
        raise ValidationFailed("Food type must be veg or non-veg")
    if spec.price is None or spec.price < 0:
        raise ValidationFailed("Price must be a non-negative amount")
    if spec.discounted_price is not None and not 0 <= spec.discounted_price <= spec.price:
        raise ValidationFailed("Discounted price must be between 0 and the price")
    if len(spec.image_urls) > MAX_IMAGES:
        raise ValidationFailed(f"You can only upload a maximum of {MAX_IMAGES} images for a food item")
    if not spec.has_variants and spec.variants:
        raise ValidationFailed("Variants should not be provided when hasVariants is false")
    if spec.has_variants and not spec.variants:
        raise ValidationFailed("Variants are required when hasVariants is true")
    if len(spec.variants) > MAX_VARIANTS:
        raise ValidationFailed(f"You can only create a maximum of {MAX_VARIANTS} food variants")
    if _has_duplicates(spec.tags):
        raise ValidationFailed("All tags must be unique")
    if _has_duplicates(v.variant_name.strip().lower() for v in spec.variants):
        raise ValidationFailed("All variant names must be unique")
    for variant in spec.variants:
        if not variant.variant_name.strip() or variant.price is None or variant.price < 0:
            raise ValidationFailed("Each variant needs a name and a non-negative price")
        if variant.discounted_price is not None and not 0 <= variant.discounted_price <= variant.price:
            raise ValidationFailed(f"Discounted price of variant {variant.variant_name} must not exceed its price")
    if spec.category and restaurant.categories and spec.category not in restaurant.categories:
        raise ValidationFailed("Category must be one of the restaurant's categories")


def create_food_item(session: Session, restaurant: Restaurant, owner_id: int, spec: FoodItemSpec) -> FoodItem:
    """Validate, check the food item quota and commit a new menu entry."""
    validate_food_item(spec, restaurant)
    enforce_quota(session, owner_id, "food_items", restaurant.id)

    food_name = spec.food_name.strip()
    exists = session.query(FoodItem.id).filter(
        FoodItem.restaurant_id == restaurant.id, FoodItem.food_name == food_name
    ).first()
    if exists:
        raise Conflict("Food item with this name already exists in the restaurant")

    item = FoodItem(
        restaurant_id=restaurant.id,
        food_name=food_name,
        price=spec.price,
        discounted_price=spec.discounted_price,
        has_variants=spec.has_variants,
        category=spec.category,
        food_type=spec.food_type,
        description=spec.description,
        tags=list(spec.tags),
        image_urls=list(spec.image_urls),
        is_available=True,
    )
    item.variants = [
        FoodVariant(
            variant_name=v.variant_name.strip(),
            price=v.price,
            discounted_price=v.discounted_price,
            description=v.description,
            is_available=v.is_available,
        )
        for v in spec.variants
    ]
    session.add(item)
    session.commit()
    logger.info("Food item %s added to %s", item.id, restaurant.slug)
    return item


def list_food_items(session: Session, restaurant: Restaurant, include_unavailable: bool = False) -> List[FoodItem]:
    query = (
        session.query(FoodItem)
        .options(selectinload(FoodItem.variants))
        .filter(FoodItem.restaurant_id == restaurant.id)
    )
    if not include_unavailable:
        query = query.filter(FoodItem.is_available.is_(True))
    return query.order_by(FoodItem.category, FoodItem.food_name).all()


def get_food_item(session: Session, restaurant: Restaurant, food_item_id: int) -> FoodItem:
    item = session.get(FoodItem, food_item_id)
    if item is None or item.restaurant_id != restaurant.id:
        raise NotFound("Food item not found")
    return item


def toggle_availability(session: Session, item: FoodItem) -> FoodItem:
    item.is_available = not item.is_available
    session.commit()
    logger.info("Food item %s availability set to %s", item.id, item.is_available)
    return item
