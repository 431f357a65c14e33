"""Tests for subscription status and admin plan changes."""

import pytest

from dinein.db.models import Subscription, SubscriptionHistory


@pytest.mark.asyncio
async def test_me_reports_and_reconciles(async_client, factory, auth_headers, fresh_session):
    owner = factory.owner(trial_days=-1)
    r = await async_client.get("/api/subscriptions/me", headers=auth_headers(owner))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["isSubscriptionActive"] is False
    assert data["reason"] == "trial_expired"
    assert fresh_session().query(Subscription).filter_by(user_id=owner.id).one().is_subscription_active is False


@pytest.mark.asyncio
async def test_admin_upgrade_unlocks_quota(async_client, factory, auth_headers, fresh_session, notifier):
    owner = factory.owner(plan="starter", end_days=30)
    factory.restaurant(owner, slug="one")
    admin = factory.user(role="admin")

    r = await async_client.put(
        f"/api/subscriptions/{owner.id}", json={"plan": "medium", "durationDays": 30}, headers=auth_headers(admin)
    )
    assert r.status_code == 200
    assert r.json()["data"]["plan"] == "medium"
    assert fresh_session().query(SubscriptionHistory).filter_by(user_id=owner.id).count() == 1
    assert notifier.sent[-1]["kind"] == "subscription_changed"

    r = await async_client.post(
        "/api/restaurants", json={"restaurantName": "Two", "slug": "two"}, headers=auth_headers(owner)
    )
    assert r.status_code == 201


@pytest.mark.asyncio
async def test_admin_revives_lapsed_subscription(async_client, factory, auth_headers):
    owner = factory.owner(trial_days=-1)
    admin = factory.user(role="admin")
    r = await async_client.put(f"/api/subscriptions/{owner.id}", json={"plan": "pro"}, headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.json()["data"]["isSubscriptionActive"] is True
    assert r.json()["data"]["isTrial"] is False


@pytest.mark.asyncio
async def test_plan_change_requires_admin(async_client, factory, auth_headers):
    owner = factory.owner()
    r = await async_client.put(f"/api/subscriptions/{owner.id}", json={"plan": "pro"}, headers=auth_headers(owner))
    assert r.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"plan": "platinum"},
    {"plan": "pro", "subscriptionEndDate": "2000-01-01T00:00:00"},
])
async def test_plan_change_validation(async_client, factory, auth_headers, payload):
    owner = factory.owner()
    admin = factory.user(role="admin")
    r = await async_client.put(f"/api/subscriptions/{owner.id}", json=payload, headers=auth_headers(admin))
    assert r.status_code == 400
