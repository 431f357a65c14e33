"""
Cart resolution against the live menu.

Turns what a diner asked for into line snapshots that are safe to persist:
every line is checked against the restaurant's available items and variants,
and the unit price always comes from the catalog, never from the client.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from dinein.db.models import FoodItem, FoodVariant
from dinein.errors import InvalidItem, InvalidVariant, ItemUnavailable, ValidationFailed

MAX_LINE_QUANTITY = 1000


@dataclass
class CartLine:
    """A line as requested by the client."""
    food_item_id: int
    quantity: object
    variant_name: Optional[str] = None


@dataclass
class ResolvedLine:
    """A cart line after validation and price substitution (prices in cents)."""
    food_item_id: int
    variant_name: Optional[str]
    quantity: int
    price: int

    @property
    def line_total(self) -> int:
        return self.price * self.quantity


def _validate_quantity(line: CartLine) -> int:
    quantity = line.quantity
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
        raise InvalidItem(f"Each food item must have an id and a numeric quantity (item {line.food_item_id})")
    # also rejects nan and inf
    if not 0 < quantity <= MAX_LINE_QUANTITY or int(quantity) != quantity:
        raise InvalidItem(
            f"Quantity for food item {line.food_item_id} must be a whole number between 1 and {MAX_LINE_QUANTITY}"
        )
    return int(quantity)


def unit_price(item: FoodItem, variant: Optional[FoodVariant]) -> int:
    """
    Catalog price for one unit.

    Variant discounted price, else variant price, else the item's plain price.
    An item-level ``discounted_price`` is not applied to non-variant lines.
    """
    if variant is not None:
        if variant.discounted_price is not None:
            return variant.discounted_price
        return variant.price
    return item.price


def _find_variant(item: FoodItem, variant_name: str) -> FoodVariant:
    if not item.has_variants:
        raise InvalidVariant(f"Food item {item.id} does not have variants")
    variant = next((v for v in item.variants if v.variant_name == variant_name), None)
    if variant is None:
        raise InvalidVariant(f"Variant {variant_name} for food item {item.id} is not valid")
    if not variant.is_available:
        raise ItemUnavailable(f"Variant {variant_name} for food item {item.id} is not available")
    return variant


def resolve_cart(session: Session, restaurant_id: int, requested_lines: Iterable[CartLine]) -> List[ResolvedLine]:
    """
    Validate every requested line and return priced snapshots.

    Raises:
        ValidationFailed: empty cart
        InvalidItem: bad quantity, or item missing/unavailable/in another restaurant
        InvalidVariant: variant requested on a plain item or unknown variant name
        ItemUnavailable: variant exists but is switched off
    """
    requested = list(requested_lines)
    if not requested:
        raise ValidationFailed("Order must contain at least one food item")

    quantities = [_validate_quantity(line) for line in requested]

    ids = {line.food_item_id for line in requested}
    stmt = (
        select(FoodItem)
        .options(selectinload(FoodItem.variants))
        .where(FoodItem.id.in_(ids))
        .where(FoodItem.restaurant_id == restaurant_id)
        .where(FoodItem.is_available.is_(True))
    )
    catalog: Dict[int, FoodItem] = {item.id: item for item in session.execute(stmt).scalars().all()}

    resolved = []
    for line, quantity in zip(requested, quantities):
        item = catalog.get(line.food_item_id)
        if item is None:
            raise InvalidItem(f"Food item with id {line.food_item_id} is not available")

        variant = _find_variant(item, line.variant_name) if line.variant_name else None
        resolved.append(
            ResolvedLine(
                food_item_id=item.id,
                variant_name=variant.variant_name if variant else None,
                quantity=quantity,
                price=unit_price(item, variant),
            )
        )
    return resolved
