"""Tests for table creation, QR slug retries and table lookups."""

import re

import pytest

from dinein import config
from dinein.db.models import DiningTable
from dinein.errors import Conflict, QuotaExceeded
from dinein.services.tables import create_table, generate_qr_slug


def test_generated_slug_shape():
    slug = generate_qr_slug(12)
    assert re.fullmatch(r"0012-[a-z0-9]{4}", slug)
    assert generate_qr_slug(123456).startswith("3456-")


def test_slug_collision_is_retried(session, factory):
    owner = factory.owner()
    restaurant = factory.restaurant(owner)
    factory.table(restaurant, name="Existing", qr_slug="dup-slug")

    slugs = iter(["dup-slug", "dup-slug", "fresh-slug"])
    table = create_table(session, restaurant, owner.id, "Patio", 2, slug_factory=lambda _id: next(slugs))

    assert table.qr_slug == "fresh-slug"
    assert session.query(DiningTable).count() == 2


def test_slug_collisions_exhausted(session, factory):
    owner = factory.owner(plan="pro", end_days=30)
    restaurant = factory.restaurant(owner)
    factory.table(restaurant, name="Existing", qr_slug="dup-slug")
    attempts = []

    def always_taken(_id):
        attempts.append(1)
        return "dup-slug"

    with pytest.raises(Conflict):
        create_table(session, restaurant, owner.id, "Patio", slug_factory=always_taken)
    assert len(attempts) == config.QR_SLUG_MAX_ATTEMPTS
    assert session.query(DiningTable).count() == 1


def test_same_slug_in_other_restaurant_is_fine(session, factory):
    owner = factory.owner(plan="medium", end_days=30)
    first = factory.restaurant(owner)
    second = factory.restaurant(owner)
    factory.table(first, qr_slug="shared")
    table = create_table(session, second, owner.id, "T1", slug_factory=lambda _id: "shared")
    assert table.restaurant_id == second.id


def test_duplicate_table_name(session, factory):
    owner = factory.owner()
    restaurant = factory.restaurant(owner)
    factory.table(restaurant, name="T1")
    with pytest.raises(Conflict):
        create_table(session, restaurant, owner.id, "T1")


def test_starter_table_quota(session, factory):
    owner = factory.owner(plan="starter", end_days=30)
    restaurant = factory.restaurant(owner)
    for n in range(4):
        create_table(session, restaurant, owner.id, f"T{n}")
    with pytest.raises(QuotaExceeded) as exc:
        create_table(session, restaurant, owner.id, "T5")
    assert "max 4 tables" in exc.value.message


@pytest.mark.asyncio
async def test_create_and_lookup_over_http(async_client, factory, auth_headers):
    owner = factory.owner()
    staff = factory.user(role="staff")
    restaurant = factory.restaurant(owner, staff=[staff])

    r = await async_client.post(
        f"/api/tables/{restaurant.slug}", json={"tableName": "Window", "seatCount": 2}, headers=auth_headers(owner)
    )
    assert r.status_code == 201
    table = r.json()["data"]
    assert table["isOccupied"] is False

    public = await async_client.get(f"/api/tables/{restaurant.slug}/{table['qrSlug']}")
    assert public.status_code == 200
    assert public.json()["data"]["restaurant"]["slug"] == restaurant.slug

    listed = await async_client.get(f"/api/tables/{restaurant.slug}", headers=auth_headers(staff))
    assert [t["tableName"] for t in listed.json()["data"]] == ["Window"]

    assert (await async_client.get(f"/api/tables/{restaurant.slug}/missing")).status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"tableName": "", "seatCount": 2},
    {"tableName": "A", "seatCount": 0},
    {"tableName": "A", "seatCount": 101},
])
async def test_create_table_validation(async_client, factory, auth_headers, payload):
    owner = factory.owner()
    restaurant = factory.restaurant(owner)
    r = await async_client.post(f"/api/tables/{restaurant.slug}", json=payload, headers=auth_headers(owner))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_other_owner_cannot_create_tables(async_client, factory, auth_headers):
    restaurant = factory.restaurant(factory.owner())
    intruder = factory.owner()
    r = await async_client.post(
        f"/api/tables/{restaurant.slug}", json={"tableName": "X"}, headers=auth_headers(intruder)
    )
    assert r.status_code == 404
