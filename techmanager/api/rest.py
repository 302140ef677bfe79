"""Row API in the PostgREST dialect the hosted backend speaks.

Supported: ``col=eq.value``, ``col=is.null``, ``order=col.asc|desc`` and
``Prefer: return=representation`` on writes.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from techmanager.db import crud
from techmanager.dependencies import get_db, require_auth
from techmanager.services.access import ensure_can_write
from techmanager.services.auth import AuthContext

router = APIRouter(prefix="/rest/v1", tags=["rest"])


@contextmanager
def _row_errors():
    try:
        yield
    except crud.UnknownTableError as exc:
        raise HTTPException(404, str(exc))
    except ValueError as exc:
        raise HTTPException(400, str(exc))


def _parse_query(request: Request) -> tuple[dict[str, Any], str | None, bool]:
    filters: dict[str, Any] = {}
    order, descending = None, False
    for key, value in request.query_params.items():
        if key == "select":
            continue
        if key == "order":
            order, _, direction = value.partition(".")
            descending = direction == "desc"
        elif value.startswith("eq."):
            filters[key] = value[3:]
        elif value == "is.null":
            filters[key] = None
        else:
            raise HTTPException(400, f"Unsupported filter: {key}={value}")
    return filters, order, descending


def _wants_rows(request: Request) -> bool:
    return "return=representation" in request.headers.get("Prefer", "")


@router.get("/{table}")
async def select_rows(
    table: str,
    request: Request,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    filters, order, descending = _parse_query(request)
    with _row_errors():
        return await crud.select_rows(db, table, filters, order, descending)


@router.post("/{table}", status_code=201)
async def insert_row(
    table: str,
    body: dict,
    request: Request,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    with _row_errors():
        await ensure_can_write(db, auth, table, "insert", values=body)
        row = await crud.insert_row(db, table, body)
    if _wants_rows(request):
        return JSONResponse(status_code=201, content=[row])
    return Response(status_code=201)


@router.patch("/{table}")
async def update_rows(
    table: str,
    body: dict,
    request: Request,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    filters, _, _ = _parse_query(request)
    if not filters:
        raise HTTPException(400, "UPDATE requires a WHERE clause")
    with _row_errors():
        await ensure_can_write(db, auth, table, "update", values=body, filters=filters)
        rows = await crud.update_rows(db, table, body, filters)
    if _wants_rows(request):
        return rows
    return Response(status_code=204)


@router.delete("/{table}", status_code=204)
async def delete_rows(
    table: str,
    request: Request,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    filters, _, _ = _parse_query(request)
    if not filters:
        raise HTTPException(400, "DELETE requires a WHERE clause")
    with _row_errors():
        await ensure_can_write(db, auth, table, "delete", filters=filters)
        await crud.delete_rows(db, table, filters)
    return Response(status_code=204)
