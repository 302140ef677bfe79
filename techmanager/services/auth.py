"""Authentication service: bcrypt passwords, JWT access tokens, refresh sessions."""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta

import bcrypt
from fastapi import HTTPException
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from techmanager.config import AuthConfig
from techmanager.db import crud
from techmanager.models import AuthAccount
from techmanager.schemas import AuthSession, AuthUser, User, UserRole


@dataclass
class AuthContext:
    user_id: str
    role: str  # 'admin' | 'technician', read from the profile row
    email: str
    session_id: str


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def _hash_token(token: str) -> str:
    """SHA-256 hash of a refresh token for DB storage."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _auth_user(account: AuthAccount) -> AuthUser:
    return AuthUser(id=account.id, email=account.email, user_metadata=dict(account.user_metadata or {}))


def issue_access_token(account: AuthAccount, session_id: str, cfg: AuthConfig) -> tuple[str, int]:
    """Sign an access token for an account. Returns (token, expires_at epoch)."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(minutes=cfg.access_token_ttl_minutes)
    claims = {
        "sub": account.id,
        "email": account.email,
        "role": "authenticated",
        "user_metadata": dict(account.user_metadata or {}),
        "session_id": session_id,
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(claims, cfg.jwt_secret, algorithm=cfg.jwt_algorithm), int(expires.timestamp())


async def create_session(account: AuthAccount, db: AsyncSession, cfg: AuthConfig) -> AuthSession:
    """Create a refresh session and a fresh access token for it."""
    refresh_token = secrets.token_urlsafe(48)
    expires_at = datetime.now(timezone.utc) + timedelta(days=cfg.refresh_token_ttl_days)
    record = await crud.create_auth_session(db, account.id, _hash_token(refresh_token), expires_at)
    access_token, access_expires = issue_access_token(account, record.id, cfg)
    return AuthSession(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=cfg.access_token_ttl_minutes * 60,
        expires_at=access_expires,
        user=_auth_user(account),
    )


async def sign_in_with_password(db: AsyncSession, email: str, password: str, cfg: AuthConfig) -> AuthSession:
    account = await crud.get_account_by_email(db, email.strip())
    if not account or not verify_password(password, account.password_hash):
        raise HTTPException(status_code=400, detail="Invalid login credentials")
    if account.email_confirmed_at is None:
        raise HTTPException(status_code=400, detail="Email not confirmed")
    await crud.mark_signed_in(db, account)
    return await create_session(account, db, cfg)


async def sign_up(db: AsyncSession, email: str, password: str, full_name: str, cfg: AuthConfig) -> AuthSession:
    """Self-registration. The role is always technician, whatever the caller asked for."""
    email = email.strip()
    if not email or "@" not in email:
        raise HTTPException(status_code=400, detail="Invalid email")
    if len(password) < cfg.min_password_length:
        raise HTTPException(
            status_code=400,
            detail=f"Password should be at least {cfg.min_password_length} characters",
        )
    if await crud.get_account_by_email(db, email):
        raise HTTPException(status_code=400, detail="User already registered")
    account = await crud.create_account(
        db, email, hash_password(password), full_name or email.split("@")[0], role=UserRole.TECHNICIAN.value,
    )
    await crud.mark_signed_in(db, account)
    return await create_session(account, db, cfg)


async def refresh_session(db: AsyncSession, refresh_token: str, cfg: AuthConfig) -> AuthSession:
    """Rotate a refresh token: the old session record is replaced."""
    record = await crud.get_auth_session_by_refresh_hash(db, _hash_token(refresh_token))
    if not record or _aware(record.expires_at) <= datetime.now(timezone.utc):
        raise HTTPException(status_code=401, detail="Invalid Refresh Token")
    account = await crud.get_account(db, record.user_id)
    await crud.delete_auth_session(db, record)
    if not account:
        raise HTTPException(status_code=401, detail="Invalid Refresh Token")
    return await create_session(account, db, cfg)


async def remove_session(db: AsyncSession, session_id: str) -> None:
    record = await crud.get_auth_session(db, session_id)
    if record:
        await crud.delete_auth_session(db, record)


def _aware(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


async def authenticate_token(db: AsyncSession, token: str | None, cfg: AuthConfig) -> AuthContext:
    """Validate a bearer token against its live session. Raises 401.

    The role comes from the profile row, never from the token's metadata.
    """
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        claims = jwt.decode(token, cfg.jwt_secret, algorithms=[cfg.jwt_algorithm])
    except JWTError:
        raise HTTPException(status_code=401, detail="Unauthorized")

    record = await crud.get_auth_session(db, claims.get("session_id", ""))
    account = await crud.get_account(db, claims.get("sub", ""))
    if not record or not account or record.user_id != account.id:
        raise HTTPException(status_code=401, detail="Session expired")

    profile = await crud.get_profile(db, account.id)
    return AuthContext(
        user_id=account.id,
        role=profile.role if profile else UserRole.TECHNICIAN.value,
        email=account.email,
        session_id=record.id,
    )


def require_admin(auth: AuthContext) -> AuthContext:
    if auth.role != UserRole.ADMIN.value:
        raise HTTPException(status_code=403, detail="Only administrators can manage technicians")
    return auth


# ── Client-side fast path ─────────────────────────────────

def read_token_claims(token: str) -> dict:
    """Decode claims without verifying the signature. Client use only."""
    return jwt.get_unverified_claims(token)


def fast_path_user(session: AuthSession) -> User:
    """Build a User from the session token with no network round trip.

    Falls back to the session's user block if the token is not a readable JWT.
    """
    try:
        claims = read_token_claims(session.access_token)
        user_id = claims.get("sub") or session.user.id
        email = claims.get("email") or session.user.email
        metadata = claims.get("user_metadata") or session.user.user_metadata
    except JWTError:
        user_id, email, metadata = session.user.id, session.user.email, session.user.user_metadata

    role = metadata.get("role")
    if role not in (UserRole.ADMIN.value, UserRole.TECHNICIAN.value):
        role = UserRole.TECHNICIAN.value
    return User(
        id=user_id,
        email=email or "",
        name=metadata.get("full_name") or (email.split("@")[0] if email else "") or "User",
        role=role,
    )


def session_id_of(token: str) -> str:
    try:
        return read_token_claims(token).get("session_id", "")
    except JWTError:
        return ""
