"""Serverless function endpoints. Errors are returned as ``{"error": message}``."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from techmanager.config import AuthConfig
from techmanager.dependencies import bearer_token, get_auth_config, get_db
from techmanager.services import manage_users

router = APIRouter(prefix="/functions/v1", tags=["functions"])


@router.api_route("/manage-users", methods=["POST", "DELETE"])
async def manage_users_function(
    request: Request,
    db: AsyncSession = Depends(get_db),
    cfg: AuthConfig = Depends(get_auth_config),
):
    token = bearer_token(request)
    if not token:
        return JSONResponse(status_code=401, content={"error": "Missing authorization"})
    try:
        body = await request.json()
    except ValueError:
        body = {}

    try:
        result = await manage_users.handle(db, request.method, token, body or {}, cfg)
    except HTTPException as exc:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    return JSONResponse(status_code=201 if request.method == "POST" else 200, content=result)
