"""Thin wrappers over the backend's auth verbs."""

from __future__ import annotations

from techmanager.backend.base import Backend
from techmanager.schemas import AuthSession


class AuthService:
    def __init__(self, backend: Backend):
        self.backend = backend

    async def get_session(self) -> AuthSession | None:
        return await self.backend.get_session()

    async def sign_in(self, email: str, password: str) -> AuthSession:
        return await self.backend.sign_in_with_password(email.strip(), password)

    async def sign_up(self, name: str, email: str, password: str) -> AuthSession:
        return await self.backend.sign_up(email.strip(), password, name.strip())

    async def sign_out(self) -> None:
        await self.backend.sign_out()
