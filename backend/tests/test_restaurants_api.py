"""Tests for restaurant management endpoints."""

import pytest
from sqlalchemy import event

from dinein.db.models import Restaurant
from dinein.errors import Conflict
from dinein.services.restaurants import create_restaurant


@pytest.mark.asyncio
async def test_create_restaurant_starts_closed(async_client, factory, auth_headers):
    owner = factory.owner()
    r = await async_client.post(
        "/api/restaurants",
        json={"restaurantName": "Blue Door", "slug": "bluedoor", "categories": ["Pizza", "Pizza", "Drinks"]},
        headers=auth_headers(owner),
    )
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["isCurrentlyOpen"] is False
    assert data["categories"] == ["Pizza", "Drinks"]

    fetched = await async_client.get("/api/restaurants/bluedoor")
    assert fetched.json()["data"]["restaurantName"] == "Blue Door"


@pytest.mark.asyncio
@pytest.mark.parametrize("slug", ["ab", "waytoolong", "Bad_Slug"])
async def test_slug_format(async_client, factory, auth_headers, slug):
    owner = factory.owner()
    r = await async_client.post(
        "/api/restaurants", json={"restaurantName": "X", "slug": slug}, headers=auth_headers(owner)
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_slug(async_client, factory, auth_headers):
    factory.restaurant(factory.owner(), slug="taken")
    owner = factory.owner()
    r = await async_client.post(
        "/api/restaurants", json={"restaurantName": "X", "slug": "taken"}, headers=auth_headers(owner)
    )
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_staff_cannot_create_restaurant(async_client, factory, auth_headers):
    staff = factory.user(role="staff")
    r = await async_client.post(
        "/api/restaurants", json={"restaurantName": "X", "slug": "xyz"}, headers=auth_headers(staff)
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_open_with_lapsed_subscription_is_refused(async_client, factory, auth_headers, fresh_session):
    owner = factory.owner(plan="starter", end_days=-1)
    restaurant = factory.restaurant(owner, is_open=False)

    r = await async_client.patch(
        f"/api/restaurants/{restaurant.slug}/open", json={"isCurrentlyOpen": True}, headers=auth_headers(owner)
    )
    assert r.status_code == 403
    assert fresh_session().get(Restaurant, restaurant.id).is_currently_open is False


@pytest.mark.asyncio
async def test_open_close_and_tax(async_client, factory, auth_headers):
    owner = factory.owner()
    restaurant = factory.restaurant(owner, is_open=False)
    headers = auth_headers(owner)

    r = await async_client.patch(f"/api/restaurants/{restaurant.slug}/open", json={"isCurrentlyOpen": True}, headers=headers)
    assert r.json()["data"]["isCurrentlyOpen"] is True

    r = await async_client.patch(
        f"/api/restaurants/{restaurant.slug}/tax",
        json={"taxRate": 18, "taxLabel": "GST", "isTaxIncludedInPrice": True},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["data"]["taxRate"] == 18

    r = await async_client.patch(f"/api/restaurants/{restaurant.slug}/tax", json={"taxRate": 150}, headers=headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_add_staff(async_client, factory, auth_headers):
    owner = factory.owner()
    restaurant = factory.restaurant(owner)
    factory.user(role="staff", email="cook@example.com")
    other_owner = factory.owner(email="boss@example.com")
    headers = auth_headers(owner)

    r = await async_client.post(f"/api/restaurants/{restaurant.slug}/staff", json={"email": "cook@example.com"}, headers=headers)
    assert r.status_code == 201
    assert restaurant.id in r.json()["data"]["restaurantIds"]

    r = await async_client.post(f"/api/restaurants/{restaurant.slug}/staff", json={"email": "cook@example.com"}, headers=headers)
    assert r.status_code == 409

    r = await async_client.post(f"/api/restaurants/{restaurant.slug}/staff", json={"email": other_owner.email}, headers=headers)
    assert r.status_code == 400

    r = await async_client.post(f"/api/restaurants/{restaurant.slug}/staff", json={"email": "ghost@example.com"}, headers=headers)
    assert r.status_code == 404


def test_slug_taken_between_check_and_commit(session, factory, fresh_session):
    owner = factory.owner()
    rival = factory.owner()

    def insert_rival(*args):
        other = fresh_session()
        other.add(Restaurant(restaurant_name="Rival", slug="racy", owner_id=rival.id, categories=[]))
        other.commit()

    event.listen(session, "before_flush", insert_rival, once=True)

    with pytest.raises(Conflict):
        create_restaurant(session, owner.id, "Mine", "racy")

    remaining = fresh_session().query(Restaurant).filter_by(slug="racy").one()
    assert remaining.owner_id == rival.id
