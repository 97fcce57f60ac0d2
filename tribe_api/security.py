# tribe_api/security.py
import hmac, hashlib, secrets, logging
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.exc import IntegrityError

from tribe_api.config import (
    AUTH_TOKEN_TTL_HOURS,
    PASSWORD_RESET_TTL_MINUTES,
    PASSWORD_RESET_REDIRECT_URL,
    APP_DEBUG,
)
from tribe_api.db.session import get_session
from tribe_api.db.models import Profile
from tribe_api.db import crud

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 260_000


# ===== password hashing =====
def hash_password(password: str, *, salt: Optional[str] = None, iterations: int = PBKDF2_ITERATIONS) -> str:
    salt = salt or secrets.token_hex(16)
    dig = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${dig.hex()}"

def verify_password(password: str, encoded: str) -> bool:
    try:
        algo, iterations, salt, _ = encoded.split("$", 3)
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    expect = hash_password(password, salt=salt, iterations=int(iterations))
    return hmac.compare_digest(expect, encoded)

def random_password() -> str:
    return secrets.token_urlsafe(24)


def _aware(dt: datetime) -> datetime:
    # sqlite 는 tzinfo 없이 돌려줌
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


# ===== auth state =====
@dataclass(frozen=True)
class AuthState:
    profile: Profile
    role: str

    @property
    def user_id(self) -> str:
        return self.profile.id

    @property
    def email(self) -> str:
        return self.profile.email

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# ===== auth operations =====
async def sign_up(email: str, password: str, full_name: Optional[str] = None) -> Profile:
    async with get_session() as s:
        if await crud.get_profile_by_email(s, email):
            raise HTTPException(status_code=409, detail="User already registered")
        try:
            profile = await crud.create_profile(s, email=email, password_hash=hash_password(password), full_name=full_name)
        except IntegrityError:
            raise HTTPException(status_code=409, detail="User already registered")
    logger.info("signed up user id=%s", profile.id)
    return profile


async def sign_in(email: str, password: str) -> tuple[str, datetime, Profile]:
    async with get_session() as s:
        profile = await crud.get_profile_by_email(s, email)
        if profile is None or not verify_password(password, profile.password_hash):
            raise HTTPException(status_code=401, detail="Invalid login credentials")
        token = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + timedelta(hours=AUTH_TOKEN_TTL_HOURS)
        await crud.add_auth_token(s, token=token, user_id=profile.id, expires_at=expires_at)
    return token, expires_at, profile


async def sign_out(token: str) -> None:
    async with get_session() as s:
        await crud.delete_auth_token(s, token)


async def request_password_reset(email: str) -> Optional[str]:
    """
    Creates a reset token when the email exists. The caller always answers
    success so registered emails are not disclosed.
    """
    async with get_session() as s:
        profile = await crud.get_profile_by_email(s, email)
        if profile is None:
            logger.info("password reset requested for unknown email")
            return None
        token = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=PASSWORD_RESET_TTL_MINUTES)
        await crud.add_password_reset(s, token=token, user_id=profile.id, expires_at=expires_at)
    # TODO: hand the link to an SMTP sender once one is configured
    logger.info("password reset token issued for user=%s", profile.id)
    if APP_DEBUG:
        logger.debug("DBG :: password reset link %s?token=%s", PASSWORD_RESET_REDIRECT_URL, token)
    return token


async def reset_password(token: str, new_password: str) -> None:
    async with get_session() as s:
        row = await crud.get_password_reset(s, token)
        if row is None or row.used or _aware(row.expires_at) < datetime.now(timezone.utc):
            raise HTTPException(status_code=400, detail="Invalid or expired reset token")
        await crud.update_profile(s, row.user_id, password_hash=hash_password(new_password))
        await crud.mark_password_reset_used(s, row)
        await crud.delete_user_tokens(s, row.user_id)


# ===== guards (FastAPI dependencies) =====
def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


async def get_auth_state(authorization: Optional[str] = Header(None)) -> Optional[AuthState]:
    token = bearer_token(authorization)
    if not token:
        return None
    async with get_session() as s:
        row = await crud.get_auth_token(s, token)
        if row is None or _aware(row.expires_at) < datetime.now(timezone.utc):
            return None
        profile = await crud.get_profile(s, row.user_id)
        if profile is None:
            return None
        role = await crud.get_role(s, profile.id)
    return AuthState(profile=profile, role=role)


async def require_user(state: Optional[AuthState] = Depends(get_auth_state)) -> AuthState:
    if state is None:
        raise HTTPException(status_code=401, detail="not authenticated", headers={"WWW-Authenticate": "Bearer"})
    return state


async def require_admin(state: AuthState = Depends(require_user)) -> AuthState:
    if not state.is_admin:
        raise HTTPException(status_code=403, detail="admin only")
    return state
