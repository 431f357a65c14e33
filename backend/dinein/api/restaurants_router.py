"""Restaurant management API router."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dinein.api.presenters import restaurant_to_dict, user_to_dict
from dinein.db.dependencies import Principal, get_sqlalchemy_session, require_owner
from dinein.errors import api_response
from dinein.services import restaurants as restaurant_service


class CreateRestaurantRequest(BaseModel):
    restaurantName: str
    slug: str
    description: Optional[str] = None
    address: Optional[str] = None
    categories: List[str] = []
    openingTime: Optional[str] = None
    closingTime: Optional[str] = None


class OpeningStatusRequest(BaseModel):
    isCurrentlyOpen: bool


class TaxRequest(BaseModel):
    taxRate: float
    taxLabel: Optional[str] = None
    isTaxIncludedInPrice: bool = False


class AddStaffRequest(BaseModel):
    email: str


router = APIRouter(prefix="/api/restaurants", tags=["restaurants"])


@router.post("", status_code=201)
async def create_restaurant(
    request: CreateRestaurantRequest,
    current_user: Principal = Depends(require_owner),
    session: Session = Depends(get_sqlalchemy_session),
):
    """Create a restaurant; needs an active subscription with restaurant capacity left."""
    restaurant = restaurant_service.create_restaurant(
        session,
        current_user.id,
        request.restaurantName,
        request.slug,
        description=request.description,
        address=request.address,
        categories=request.categories,
        opening_time=request.openingTime,
        closing_time=request.closingTime,
    )
    return api_response(201, restaurant_to_dict(restaurant), "Restaurant created successfully")


@router.get("/{slug}")
async def get_restaurant(slug: str, session: Session = Depends(get_sqlalchemy_session)):
    restaurant = restaurant_service.get_restaurant_by_slug(session, slug)
    return api_response(200, restaurant_to_dict(restaurant), "Restaurant fetched successfully")


@router.patch("/{slug}/open")
async def set_opening_status(
    slug: str,
    request: OpeningStatusRequest,
    current_user: Principal = Depends(require_owner),
    session: Session = Depends(get_sqlalchemy_session),
):
    """Open or close the restaurant. Opening is refused without an active subscription."""
    restaurant = restaurant_service.get_owned_restaurant(session, slug, current_user)
    restaurant = restaurant_service.set_opening_status(session, restaurant, request.isCurrentlyOpen)
    return api_response(200, restaurant_to_dict(restaurant), "Restaurant status updated successfully")


@router.patch("/{slug}/tax")
async def update_tax(
    slug: str,
    request: TaxRequest,
    current_user: Principal = Depends(require_owner),
    session: Session = Depends(get_sqlalchemy_session),
):
    restaurant = restaurant_service.get_owned_restaurant(session, slug, current_user)
    restaurant = restaurant_service.update_tax(
        session, restaurant, request.taxRate, request.taxLabel, request.isTaxIncludedInPrice
    )
    return api_response(200, restaurant_to_dict(restaurant), "Tax settings updated successfully")


@router.post("/{slug}/staff", status_code=201)
async def add_staff(
    slug: str,
    request: AddStaffRequest,
    current_user: Principal = Depends(require_owner),
    session: Session = Depends(get_sqlalchemy_session),
):
    restaurant = restaurant_service.get_owned_restaurant(session, slug, current_user)
    user = restaurant_service.add_staff(session, restaurant, request.email)
    return api_response(201, user_to_dict(user), "Staff member added successfully")
