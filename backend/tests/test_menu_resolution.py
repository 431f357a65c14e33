"""Tests for cart resolution and server-side pricing."""

import pytest

from dinein.errors import InvalidItem, InvalidVariant, ItemUnavailable, ValidationFailed
from dinein.services.menu_resolution import MAX_LINE_QUANTITY, CartLine, resolve_cart


@pytest.fixture
def menu(factory):
    owner = factory.owner()
    restaurant = factory.restaurant(owner)
    pizza = factory.food_item(
        restaurant,
        name="Pizza",
        price=20000,
        discounted_price=18000,
        variants=[
            {"name": "Large", "price": 25000, "discounted_price": 22000},
            {"name": "Medium", "price": 23000},
            {"name": "Family", "price": 40000, "available": False},
        ],
    )
    soup = factory.food_item(restaurant, name="Soup", price=9000, discounted_price=8000)
    off_menu = factory.food_item(restaurant, name="Seasonal", price=5000, available=False)
    return restaurant, pizza, soup, off_menu


def test_variant_discounted_price_wins(session, menu):
    restaurant, pizza, _, _ = menu
    [line] = resolve_cart(session, restaurant.id, [CartLine(pizza.id, 2, "Large")])
    assert line.price == 22000
    assert line.quantity == 2
    assert line.variant_name == "Large"
    assert line.line_total == 44000


def test_variant_price_without_discount(session, menu):
    restaurant, pizza, _, _ = menu
    [line] = resolve_cart(session, restaurant.id, [CartLine(pizza.id, 1, "Medium")])
    assert line.price == 23000


def test_plain_item_uses_price_not_item_discount(session, menu):
    restaurant, _, soup, _ = menu
    [line] = resolve_cart(session, restaurant.id, [CartLine(soup.id, 3)])
    assert line.price == 9000
    assert line.variant_name is None


def test_float_whole_quantity_is_accepted(session, menu):
    restaurant, _, soup, _ = menu
    [line] = resolve_cart(session, restaurant.id, [CartLine(soup.id, 2.0)])
    assert line.quantity == 2
    assert isinstance(line.quantity, int)


@pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", None, True, 1e19, float("inf"), float("nan"), MAX_LINE_QUANTITY + 1])
def test_bad_quantity(session, menu, quantity):
    restaurant, _, soup, _ = menu
    with pytest.raises(InvalidItem):
        resolve_cart(session, restaurant.id, [CartLine(soup.id, quantity)])


def test_empty_cart(session, menu):
    restaurant = menu[0]
    with pytest.raises(ValidationFailed):
        resolve_cart(session, restaurant.id, [])


def test_unavailable_item(session, menu):
    restaurant, _, _, off_menu = menu
    with pytest.raises(InvalidItem):
        resolve_cart(session, restaurant.id, [CartLine(off_menu.id, 1)])


def test_item_of_another_restaurant(session, factory, menu):
    _, pizza, _, _ = menu
    other = factory.restaurant(factory.owner())
    with pytest.raises(InvalidItem):
        resolve_cart(session, other.id, [CartLine(pizza.id, 1, "Large")])


def test_variant_on_plain_item(session, menu):
    restaurant, _, soup, _ = menu
    with pytest.raises(InvalidVariant):
        resolve_cart(session, restaurant.id, [CartLine(soup.id, 1, "Large")])


def test_unknown_variant(session, menu):
    restaurant, pizza, _, _ = menu
    with pytest.raises(InvalidVariant):
        resolve_cart(session, restaurant.id, [CartLine(pizza.id, 1, "Tiny")])


def test_switched_off_variant(session, menu):
    restaurant, pizza, _, _ = menu
    with pytest.raises(ItemUnavailable):
        resolve_cart(session, restaurant.id, [CartLine(pizza.id, 1, "Family")])


def test_one_bad_line_rejects_whole_cart(session, menu):
    restaurant, pizza, soup, _ = menu
    with pytest.raises(InvalidVariant):
        resolve_cart(session, restaurant.id, [CartLine(soup.id, 1), CartLine(pizza.id, 1, "Tiny")])


def test_quantity_at_cap_is_accepted(session, menu):
    restaurant, _, soup, _ = menu
    [line] = resolve_cart(session, restaurant.id, [CartLine(soup.id, MAX_LINE_QUANTITY)])
    assert line.quantity == MAX_LINE_QUANTITY
