"""Table management API router."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dinein.api.presenters import restaurant_to_dict, table_to_dict
from dinein.db.dependencies import Principal, get_current_user, get_sqlalchemy_session, require_owner
from dinein.db.models import DiningTable
from dinein.errors import NotFound, ValidationFailed, api_response
from dinein.services.order_state import authorize_restaurant_staff
from dinein.services.restaurants import get_owned_restaurant, get_restaurant_by_slug
from dinein.services.tables import create_table


class CreateTableRequest(BaseModel):
    tableName: str
    seatCount: int = 1


router = APIRouter(prefix="/api/tables", tags=["tables"])


@router.post("/{slug}", status_code=201)
async def create_table_endpoint(
    slug: str,
    request: CreateTableRequest,
    current_user: Principal = Depends(require_owner),
    session: Session = Depends(get_sqlalchemy_session),
):
    """Create a table with a fresh QR slug; counts against the plan's table quota."""
    table_name = request.tableName.strip()
    if not 1 <= len(table_name) <= 50:
        raise ValidationFailed("Table name must be between 1 and 50 characters")
    if not 1 <= request.seatCount <= 100:
        raise ValidationFailed("Seat count must be between 1 and 100")

    restaurant = get_owned_restaurant(session, slug, current_user)
    table = create_table(session, restaurant, current_user.id, table_name, request.seatCount)
    return api_response(201, table_to_dict(table), "Table created successfully")


@router.get("/{slug}")
async def list_tables(
    slug: str,
    current_user: Principal = Depends(get_current_user),
    session: Session = Depends(get_sqlalchemy_session),
):
    restaurant = get_restaurant_by_slug(session, slug)
    authorize_restaurant_staff(restaurant, current_user)
    tables = (
        session.query(DiningTable)
        .filter(DiningTable.restaurant_id == restaurant.id)
        .order_by(DiningTable.id)
        .all()
    )
    return api_response(200, [table_to_dict(t) for t in tables], "Tables fetched successfully")


@router.get("/{slug}/{qr_slug}")
async def get_table_by_qr(slug: str, qr_slug: str, session: Session = Depends(get_sqlalchemy_session)):
    """Public lookup used by the diner's QR landing page."""
    restaurant = get_restaurant_by_slug(session, slug)
    table = session.query(DiningTable).filter(
        DiningTable.restaurant_id == restaurant.id, DiningTable.qr_slug == qr_slug
    ).first()
    if table is None:
        raise NotFound("Table not found")
    data = table_to_dict(table)
    data["restaurant"] = restaurant_to_dict(restaurant)
    return api_response(200, data, "Table fetched successfully")
