"""Authentication and authorization related routes and helpers.

Admins log in with email and password and receive a signed session
token valid for 24 hours. There is no server-side session store: a
token is valid as long as its signature verifies and its expiry lies
in the future. Privileged routes depend on :func:`get_current_admin`.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi_limiter.depends import RateLimiter
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import schemas, crud
from .core import get_settings
from .database import get_db
from .errors import AuthError
from .models import AdminUser

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=get_settings().BCRYPT_ROUNDS,
)
bearer_scheme = HTTPBearer(auto_error=False)
router = APIRouter(prefix="/auth", tags=["auth"])

TOKEN_SCOPE = "access"
INVALID_CREDENTIALS = "Invalid credentials"


@dataclass
class SessionSubject:
    """Identity claims carried by a session token."""

    id: str
    email: str
    name: str

    @classmethod
    def from_model(cls, admin: AdminUser) -> "SessionSubject":
        """
        Create a SessionSubject from an AdminUser ORM model.

        Args:
            admin (AdminUser): SQLAlchemy admin model.

        Returns:
            SessionSubject: Claims to embed in a token.
        """
        return cls(id=admin.id, email=admin.email, name=admin.name)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Compare a plain password with its hashed value."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate a password hash using the configured context."""
    return pwd_context.hash(password)


def issue_token(subject: SessionSubject, now: datetime | None = None) -> str:
    """
    Create a signed session token for ``subject``.

    Args:
        subject (SessionSubject): Admin identity.
        now (datetime | None): Issue time, defaults to the current UTC time.

    Returns:
        str: Encoded JWT expiring ``ACCESS_TOKEN_EXPIRE_MINUTES`` after ``now``.
    """
    settings = get_settings()
    issued_at = now or datetime.now(timezone.utc)
    expire = issued_at + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": subject.id,
        "email": subject.email,
        "name": subject.name,
        "iat": int(issued_at.timestamp()),
        # NumericDate may be fractional; the window ends exactly at issue + lifetime.
        "exp": expire.timestamp(),
        "scope": TOKEN_SCOPE,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def validate_token(token: str, now: datetime | None = None) -> SessionSubject | None:
    """
    Decode a session token.

    Never raises: any verification failure yields ``None``.

    Args:
        token (str): Encoded JWT.
        now (datetime | None): Check time, defaults to the current UTC time.

    Returns:
        SessionSubject | None: Subject if the signature verifies and
        ``now`` is before the expiry, otherwise ``None``.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_exp": False, "require_exp": True},
        )
    except JWTError:
        return None

    checked_at = now or datetime.now(timezone.utc)
    expires = payload.get("exp")
    if not isinstance(expires, (int, float)) or checked_at.timestamp() >= expires:
        return None
    if payload.get("scope") != TOKEN_SCOPE:
        return None

    subject_id, email, name = payload.get("sub"), payload.get("email"), payload.get("name")
    if not subject_id or not email or name is None:
        return None
    return SessionSubject(id=subject_id, email=email, name=name)


@lru_cache()
def _dummy_hash() -> str:
    return get_password_hash("dummy-password-for-unknown-accounts")


def authenticate_admin(db: Session, email: str, password: str) -> AdminUser:
    """
    Check admin credentials.

    Unknown emails and wrong passwords raise the same error, and both pay
    for a bcrypt comparison.

    Raises:
        AuthError: If the credentials do not match an admin.
    """
    admin = crud.get_admin_by_email(db, email)
    if admin is None:
        verify_password(password, _dummy_hash())
    if admin is None or not verify_password(password, admin.hashed_password):
        logger.info("Failed login for %s", email)
        raise AuthError(INVALID_CREDENTIALS)
    return admin


async def login_throttle(request: Request, response: Response):
    """Throttle login attempts per client when rate limiting is enabled."""
    settings = get_settings()
    if not settings.RATE_LIMIT_ENABLED:
        return
    limiter = RateLimiter(
        times=settings.LOGIN_RATE_LIMIT_TIMES,
        seconds=settings.LOGIN_RATE_LIMIT_SECONDS,
    )
    await limiter(request, response)


def _decode_bearer(credentials: HTTPAuthorizationCredentials | None) -> SessionSubject:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Missing credential")
    subject = validate_token(credentials.credentials)
    if subject is None:
        logger.debug("Rejected session token")
        raise AuthError("Invalid credential")
    return subject


async def get_current_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> SessionSubject:
    """Dependency admitting only requests with a valid session token."""

    subject = _decode_bearer(credentials)
    request.state.admin = subject
    return subject


async def get_optional_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> SessionSubject | None:
    """Dependency returning the admin for valid tokens, ``None`` otherwise."""

    if credentials is None:
        return None
    subject = validate_token(credentials.credentials)
    if subject is not None:
        request.state.admin = subject
    return subject


@router.post(
    "/login",
    response_model=schemas.LoginResponse,
    dependencies=[Depends(login_throttle)],
)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    """Authenticate an admin and return a session token."""

    admin = authenticate_admin(db, payload.email, payload.password)
    subject = SessionSubject.from_model(admin)
    logger.info("Admin %s logged in", admin.email)
    return schemas.LoginResponse(
        token=issue_token(subject),
        admin=schemas.AdminOut(id=admin.id, email=admin.email, name=admin.name),
    )


@router.get("/me", response_model=schemas.AdminOut)
def read_me(current_admin: SessionSubject = Depends(get_current_admin)):
    """
    Return the admin identified by the session token.

    Args:
        current_admin (SessionSubject): Subject decoded from the token.

    Returns:
        AdminOut: Admin identity.
    """
    return schemas.AdminOut(
        id=current_admin.id, email=current_admin.email, name=current_admin.name
    )
