"""
Role-based route guard for dashboard pages.

This only decides what to show; the server enforces roles on every call.
"""

from __future__ import annotations

from dataclasses import dataclass

from depot.client.session import SessionUser

LOGIN_ROUTE = "/login"

HOME_ROUTES = {
    "admin": "/admin",
    "editor": "/editor",
    "worker": "/worker",
}


@dataclass(frozen=True)
class RouteDecision:
    render: bool
    redirect: str | None = None


def home_route(position: str | None) -> str:
    return HOME_ROUTES.get(position or "", LOGIN_ROUTE)


def guard_route(user: SessionUser | None, required_role: str | None = None) -> RouteDecision:
    """Render for a matching user, otherwise say where to send them."""
    if user is None:
        return RouteDecision(render=False, redirect=LOGIN_ROUTE)
    if required_role and user.position != required_role:
        return RouteDecision(render=False, redirect=home_route(user.position))
    return RouteDecision(render=True)
