"""Auth endpoints for signup, login and the current user."""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dinein import config
from dinein.api.presenters import subscription_to_dict, user_to_dict
from dinein.db.dependencies import (
    Principal,
    create_access_token,
    get_current_user,
    get_notifier,
    get_sqlalchemy_session,
    hash_password,
    verify_password,
)
from dinein.db.models import Subscription, SubscriptionHistory, User
from dinein.errors import Conflict, Unauthenticated, ValidationFailed, api_response
from dinein.utils.time_utils import iso, utc_now_naive

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class SignupRequest(BaseModel):
    email: str
    password: str
    role: str = "owner"
    firstName: Optional[str] = None
    lastName: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


@router.post("/signup", status_code=201, summary="Create an owner or staff account")
async def signup_user(
    request: SignupRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_sqlalchemy_session),
    notifier=Depends(get_notifier),
):
    """
    Create a user. Owners start with a trial subscription.

    The user, the trial subscription and its history entry are committed
    together; the welcome email goes out afterwards and may fail silently.
    """
    email = request.email.strip().lower()
    if "@" not in email:
        raise ValidationFailed("A valid email is required")
    if len(request.password) < 8:
        raise ValidationFailed("Password must be at least 8 characters long")
    if request.role not in ("owner", "staff"):
        raise ValidationFailed("Role must be owner or staff")
    if session.query(User.id).filter(User.email == email).first():
        raise Conflict("User with this email already exists")

    now = utc_now_naive()
    subscription = None
    try:
        user = User(
            email=email,
            password_hash=hash_password(request.password),
            role=request.role,
            first_name=request.firstName,
            last_name=request.lastName,
            created_at=now,
        )
        session.add(user)
        session.flush()

        if user.role == "owner":
            trial_expires_at = now + timedelta(days=config.TRIAL_DAYS)
            subscription = Subscription(
                user_id=user.id,
                plan=None,
                is_trial=True,
                trial_expires_at=trial_expires_at,
                is_subscription_active=True,
                created_at=now,
                updated_at=now,
            )
            session.add(subscription)
            session.add(SubscriptionHistory(
                user_id=user.id,
                is_trial=True,
                trial_expires_at=trial_expires_at,
                created_at=now,
            ))
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("User %s signed up as %s", user.id, user.role)
    if subscription is not None:
        background_tasks.add_task(
            notifier.send,
            user.email,
            "signup",
            {"name": user.first_name or user.email, "trial_expires_at": iso(subscription.trial_expires_at)},
        )

    data = user_to_dict(user)
    data["subscription"] = subscription_to_dict(subscription) if subscription else None
    return api_response(201, data, "User registered successfully")


@router.post("/login", summary="Login and get JWT token")
async def login_user(request: LoginRequest, session: Session = Depends(get_sqlalchemy_session)):
    """Authenticate a user and return a bearer token."""
    user = session.query(User).filter(User.email == request.email.strip().lower()).first()
    if not user or not verify_password(request.password, user.password_hash):
        raise Unauthenticated("Invalid email or password")

    access_token = create_access_token(
        data={"sub": str(user.id), "role": user.role},
        expires_delta=timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return api_response(
        200,
        {"accessToken": access_token, "tokenType": "bearer", "user": user_to_dict(user)},
        "Logged in successfully",
    )


@router.get("/me", summary="Current user")
async def get_me(
    current_user: Principal = Depends(get_current_user),
    session: Session = Depends(get_sqlalchemy_session),
):
    user = session.get(User, current_user.id)
    return api_response(200, user_to_dict(user), "User fetched successfully")
