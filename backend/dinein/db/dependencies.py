"""FastAPI dependencies for database session injection and auth."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterator, List, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from dinein import config
from dinein.db.models import User
from dinein.errors import Forbidden, Unauthenticated


def get_storage(request: Request):
    """Storage instance attached to the running app."""
    return request.app.state.storage


def get_sqlalchemy_session(request: Request) -> Iterator[Session]:
    """
    FastAPI dependency yielding one SQLAlchemy session per request.

    Routers commit explicitly; anything left uncommitted when the request
    ends is rolled back when the session closes.
    """
    session = request.app.state.storage._get_session()
    try:
        yield session
    finally:
        session.close()


def get_gateway(request: Request):
    """Payment gateway client attached to the running app."""
    return request.app.state.gateway


def get_notifier(request: Request):
    """Notification sender attached to the running app."""
    return request.app.state.notifier


# ---------- Auth helpers ----------

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass
class Principal:
    """The authenticated caller as the core sees it."""
    id: int
    role: str
    email: str
    restaurant_ids: List[int] = field(default_factory=list)


def hash_password(password: str) -> str:
    """Hash a plain text password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def _principal_from_token(token: str, session: Session) -> Principal:
    try:
        payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            raise Unauthenticated()
    except JWTError:
        raise Unauthenticated()

    user = session.get(User, int(user_id))
    if user is None:
        raise Unauthenticated()
    return Principal(id=user.id, role=user.role, email=user.email, restaurant_ids=user.restaurant_ids)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_sqlalchemy_session),
) -> Principal:
    """Get the current principal from the bearer token."""
    return _principal_from_token(token, session)


def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    session: Session = Depends(get_sqlalchemy_session),
) -> Optional[Principal]:
    """Principal when a valid token is present, None for anonymous callers."""
    if not token:
        return None
    try:
        return _principal_from_token(token, session)
    except Unauthenticated:
        return None


def require_owner(current_user: Principal = Depends(get_current_user)) -> Principal:
    """Require a restaurant owner."""
    if current_user.role != "owner":
        raise Forbidden("Only restaurant owners can perform this action")
    return current_user


def require_admin(current_user: Principal = Depends(get_current_user)) -> Principal:
    """Require an admin user."""
    if current_user.role != "admin":
        raise Forbidden("Admin privileges required")
    return current_user
