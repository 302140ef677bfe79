"""Sidebar entries and the route guard.

Role gating here only decides what is shown. Writes are still checked by
the backend, whatever the client believes its role to be.
"""

from __future__ import annotations

from dataclasses import dataclass

from techmanager.schemas import User
from techmanager.services.auth_bootstrap import AuthBootstrap


@dataclass(frozen=True)
class NavItem:
    path: str
    label: str


ADMIN_NAV = (
    NavItem("/dashboard", "Dashboard"),
    NavItem("/technicians", "Technicians"),
    NavItem("/orders", "Service Orders"),
)
TECHNICIAN_NAV = (
    NavItem("/dashboard", "Dashboard"),
    NavItem("/my-tasks", "My Tasks"),
)
SHARED_NAV = (
    NavItem("/calendar", "Calendar"),
    NavItem("/map", "Map"),
)

ADMIN_ONLY_PATHS = {"/technicians", "/orders"}
TECHNICIAN_ONLY_PATHS = {"/my-tasks"}

LOADING = "loading"
LOGIN = "/login"
HOME = "/dashboard"


def nav_items(user: User | None) -> list[NavItem]:
    if user is None:
        return []
    return [*(ADMIN_NAV if user.is_admin else TECHNICIAN_NAV), *SHARED_NAV]


def role_label(user: User) -> str:
    return "Administrator" if user.is_admin else "Technician"


def resolve_route(path: str, auth: AuthBootstrap) -> str:
    """Where a navigation to ``path`` should land.

    Returns ``LOADING`` while the session is still being resolved.
    """
    if auth.is_loading:
        return LOADING
    user = auth.user
    if user is None:
        return LOGIN
    if path in ("", "/", LOGIN):
        return HOME
    if path in ADMIN_ONLY_PATHS and not user.is_admin:
        return HOME
    if path in TECHNICIAN_ONLY_PATHS and user.is_admin:
        return HOME
    return path
