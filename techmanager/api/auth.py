"""Auth API: password and refresh grants, sign-up, current user, logout."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from techmanager.config import AuthConfig
from techmanager.db import crud
from techmanager.dependencies import get_auth_config, get_db, require_auth
from techmanager.services import auth as auth_service
from techmanager.services.auth import AuthContext

router = APIRouter(prefix="/auth/v1", tags=["auth"])


@router.post("/token")
async def token(
    body: dict,
    grant_type: str = Query(...),
    db: AsyncSession = Depends(get_db),
    cfg: AuthConfig = Depends(get_auth_config),
):
    if grant_type == "password":
        session = await auth_service.sign_in_with_password(
            db, body.get("email", ""), body.get("password", ""), cfg,
        )
    elif grant_type == "refresh_token":
        session = await auth_service.refresh_session(db, body.get("refresh_token", ""), cfg)
    else:
        raise HTTPException(400, f"Unsupported grant type: {grant_type}")
    return session.model_dump()


@router.post("/signup")
async def signup(
    body: dict,
    db: AsyncSession = Depends(get_db),
    cfg: AuthConfig = Depends(get_auth_config),
):
    data = body.get("data") or {}
    session = await auth_service.sign_up(
        db, body.get("email", ""), body.get("password", ""), data.get("full_name", ""), cfg,
    )
    return session.model_dump()


@router.get("/user")
async def current_user(
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    account = await crud.get_account(db, auth.user_id)
    return {
        "id": account.id,
        "email": account.email,
        "user_metadata": account.user_metadata,
        "created_at": account.created_at.isoformat(),
    }


@router.post("/logout", status_code=204)
async def logout(
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.remove_session(db, auth.session_id)
    return Response(status_code=204)
