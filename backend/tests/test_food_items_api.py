"""Tests for food item catalog endpoints and validation."""

import pytest

from dinein.errors import QuotaExceeded, ValidationFailed
from dinein.services.catalog import FoodItemSpec, VariantSpec, create_food_item, validate_food_item
from dinein.db.models import Restaurant


def _spec(**overrides):
    data = dict(food_name="Pizza", price=20000, food_type="veg")
    data.update(overrides)
    return FoodItemSpec(**data)


class TestValidation:

    def _restaurant(self, categories=()):
        return Restaurant(categories=list(categories))

    @pytest.mark.parametrize("spec", [
        _spec(food_type="vegan"),
        _spec(price=-1),
        _spec(discounted_price=30000),
        _spec(has_variants=True),
        _spec(variants=[VariantSpec("Large", 25000)]),
        _spec(has_variants=True, variants=[VariantSpec(f"V{n}", 100) for n in range(7)]),
        _spec(has_variants=True, variants=[VariantSpec("Large", 100), VariantSpec("large ", 200)]),
        _spec(has_variants=True, variants=[VariantSpec("Large", 100, discounted_price=200)]),
        _spec(tags=["spicy", "spicy"]),
        _spec(image_urls=[f"https://img/{n}.png" for n in range(6)]),
    ])
    def test_rejected(self, spec):
        with pytest.raises(ValidationFailed):
            validate_food_item(spec, self._restaurant())

    def test_category_must_be_whitelisted(self):
        with pytest.raises(ValidationFailed):
            validate_food_item(_spec(category="Sushi"), self._restaurant(["Pizza"]))
        validate_food_item(_spec(category="Pizza"), self._restaurant(["Pizza"]))
        validate_food_item(_spec(category="Anything"), self._restaurant())


def test_food_item_quota(session, factory):
    owner = factory.owner(plan="starter", end_days=30)
    restaurant = factory.restaurant(owner)
    for n in range(10):
        factory.food_item(restaurant, name=f"Dish {n}")
    with pytest.raises(QuotaExceeded) as exc:
        create_food_item(session, restaurant, owner.id, _spec(food_name="One more"))
    assert "max 10 food items" in exc.value.message


@pytest.mark.asyncio
async def test_create_list_toggle(async_client, factory, auth_headers):
    owner = factory.owner()
    restaurant = factory.restaurant(owner)
    headers = auth_headers(owner)

    r = await async_client.post(
        f"/api/food-items/{restaurant.slug}",
        json={
            "foodName": "Pizza",
            "price": 200,
            "foodType": "veg",
            "hasVariants": True,
            "variants": [{"variantName": "Large", "price": 250, "discountedPrice": 220}],
        },
        headers=headers,
    )
    assert r.status_code == 201
    item = r.json()["data"]
    assert item["price"] == 200.0
    assert item["variants"][0]["discountedPrice"] == 220.0

    dup = await async_client.post(
        f"/api/food-items/{restaurant.slug}",
        json={"foodName": "Pizza", "price": 1, "foodType": "veg"},
        headers=headers,
    )
    assert dup.status_code == 409

    menu = await async_client.get(f"/api/food-items/{restaurant.slug}")
    assert [i["foodName"] for i in menu.json()["data"]] == ["Pizza"]

    toggled = await async_client.post(
        f"/api/food-items/{restaurant.slug}/{item['id']}/toggle-availability", headers=headers
    )
    assert toggled.json()["data"]["isAvailable"] is False

    menu = await async_client.get(f"/api/food-items/{restaurant.slug}")
    assert menu.json()["data"] == []

    detail = await async_client.get(f"/api/food-items/{restaurant.slug}/{item['id']}")
    assert detail.status_code == 200


@pytest.mark.asyncio
async def test_item_of_other_restaurant_is_not_found(async_client, factory):
    owner = factory.owner()
    first = factory.restaurant(owner)
    second = factory.restaurant(owner)
    item = factory.food_item(first)
    r = await async_client.get(f"/api/food-items/{second.slug}/{item.id}")
    assert r.status_code == 404
