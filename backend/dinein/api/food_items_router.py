"""Food item API router."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dinein.api.presenters import food_item_to_dict, to_cents
from dinein.db.dependencies import Principal, get_sqlalchemy_session, require_owner
from dinein.errors import api_response
from dinein.services import catalog
from dinein.services.restaurants import get_owned_restaurant, get_restaurant_by_slug


class VariantRequest(BaseModel):
    variantName: str
    price: float
    discountedPrice: Optional[float] = None
    description: Optional[str] = None
    isAvailable: bool = True


class CreateFoodItemRequest(BaseModel):
    """Prices in currency units (e.g. 2.5)."""
    foodName: str
    price: float
    foodType: str
    discountedPrice: Optional[float] = None
    hasVariants: bool = False
    variants: List[VariantRequest] = []
    category: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = []
    imageUrls: List[str] = []

    def to_spec(self) -> catalog.FoodItemSpec:
        return catalog.FoodItemSpec(
            food_name=self.foodName,
            price=to_cents(self.price),
            food_type=self.foodType,
            discounted_price=to_cents(self.discountedPrice),
            has_variants=self.hasVariants,
            variants=[
                catalog.VariantSpec(
                    variant_name=v.variantName,
                    price=to_cents(v.price),
                    discounted_price=to_cents(v.discountedPrice),
                    description=v.description,
                    is_available=v.isAvailable,
                )
                for v in self.variants
            ],
            category=self.category,
            description=self.description,
            tags=self.tags,
            image_urls=self.imageUrls,
        )


router = APIRouter(prefix="/api/food-items", tags=["food-items"])


@router.post("/{slug}", status_code=201)
async def create_food_item(
    slug: str,
    request: CreateFoodItemRequest,
    current_user: Principal = Depends(require_owner),
    session: Session = Depends(get_sqlalchemy_session),
):
    restaurant = get_owned_restaurant(session, slug, current_user)
    item = catalog.create_food_item(session, restaurant, current_user.id, request.to_spec())
    return api_response(201, food_item_to_dict(item), "Food item created successfully")


@router.get("/{slug}")
async def list_food_items(slug: str, session: Session = Depends(get_sqlalchemy_session)):
    """Public menu: available items only."""
    restaurant = get_restaurant_by_slug(session, slug)
    items = catalog.list_food_items(session, restaurant)
    return api_response(200, [food_item_to_dict(i) for i in items], "Food items fetched successfully")


@router.get("/{slug}/{food_item_id}")
async def get_food_item(slug: str, food_item_id: int, session: Session = Depends(get_sqlalchemy_session)):
    restaurant = get_restaurant_by_slug(session, slug)
    item = catalog.get_food_item(session, restaurant, food_item_id)
    return api_response(200, food_item_to_dict(item), "Food item fetched successfully")


@router.post("/{slug}/{food_item_id}/toggle-availability")
async def toggle_food_item_availability(
    slug: str,
    food_item_id: int,
    current_user: Principal = Depends(require_owner),
    session: Session = Depends(get_sqlalchemy_session),
):
    restaurant = get_owned_restaurant(session, slug, current_user)
    item = catalog.toggle_availability(session, catalog.get_food_item(session, restaurant, food_item_id))
    return api_response(200, food_item_to_dict(item), "Food item availability updated successfully")
