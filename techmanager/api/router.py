"""Aggregate all emulated backend routers."""

from fastapi import APIRouter

from techmanager.api.auth import router as auth_router
from techmanager.api.functions import router as functions_router
from techmanager.api.rest import router as rest_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(rest_router)
api_router.include_router(functions_router)
