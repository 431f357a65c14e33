"""Tests for signup, login and bearer-token auth."""

import pytest

from dinein.db.dependencies import hash_password, verify_password
from dinein.db.models import Subscription, SubscriptionHistory, User


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)


@pytest.mark.asyncio
async def test_owner_signup_starts_trial(async_client, fresh_session, notifier):
    r = await async_client.post(
        "/api/auth/signup",
        json={"email": "Chef@Example.com", "password": "password123", "role": "owner", "firstName": "Ana"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["data"]["email"] == "chef@example.com"
    assert body["data"]["subscription"]["isTrial"] is True
    assert body["data"]["subscription"]["isSubscriptionActive"] is True

    session = fresh_session()
    user = session.query(User).filter_by(email="chef@example.com").one()
    assert session.query(Subscription).filter_by(user_id=user.id).one().trial_expires_at is not None
    assert session.query(SubscriptionHistory).filter_by(user_id=user.id).count() == 1
    assert notifier.sent[0]["kind"] == "signup"


@pytest.mark.asyncio
async def test_staff_signup_has_no_subscription(async_client, fresh_session):
    r = await async_client.post(
        "/api/auth/signup", json={"email": "cook@example.com", "password": "password123", "role": "staff"}
    )
    assert r.status_code == 201
    assert r.json()["data"]["subscription"] is None
    assert fresh_session().query(Subscription).count() == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"email": "not-an-email", "password": "password123"},
    {"email": "a@example.com", "password": "short"},
    {"email": "a@example.com", "password": "password123", "role": "admin"},
])
async def test_signup_validation(async_client, payload):
    r = await async_client.post("/api/auth/signup", json=payload)
    assert r.status_code == 400
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_duplicate_email(async_client):
    payload = {"email": "dup@example.com", "password": "password123"}
    assert (await async_client.post("/api/auth/signup", json=payload)).status_code == 201
    assert (await async_client.post("/api/auth/signup", json=payload)).status_code == 409


@pytest.mark.asyncio
async def test_login_and_me(async_client):
    await async_client.post("/api/auth/signup", json={"email": "me@example.com", "password": "password123"})

    bad = await async_client.post("/api/auth/login", json={"email": "me@example.com", "password": "nope"})
    assert bad.status_code == 401

    r = await async_client.post("/api/auth/login", json={"email": "me@example.com", "password": "password123"})
    assert r.status_code == 200
    token = r.json()["data"]["accessToken"]

    me = await async_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["role"] == "owner"


@pytest.mark.asyncio
async def test_invalid_token(async_client):
    r = await async_client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Could not validate credentials", "errors": []}
