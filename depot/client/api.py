"""
Async API client for the Depot backend.

Attaches the session's bearer token to every request. Any 401 clears the
session and sends the UI to ``/login`` (unless it is already there). Each
resource method maps to exactly one REST call.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import Any

import httpx

from depot.client.config import ClientSettings
from depot.client.errors import ApiError, TransportError, error_from_response
from depot.client.guard import LOGIN_ROUTE
from depot.client.session import FileTokenStore, Session

logger = logging.getLogger(__name__)

DELETED_PRODUCT = {
    "id": None,
    "name": "Product Deleted",
    "category": "other",
    "unit": "",
    "price": 0.0,
    "supplier": None,
    "images": [],
    "is_active": False,
}


def normalize_order(order: dict) -> dict:
    """Give order lines whose product was deleted a placeholder product."""
    for item in order.get("items") or []:
        if item.get("product") is None:
            item["product"] = dict(DELETED_PRODUCT)
    return order


def _params(**values: Any) -> dict:
    params = {}
    for key, value in values.items():
        if value is None:
            continue
        params[key] = value.isoformat() if isinstance(value, date) else value
    return params


class ApiClient:
    def __init__(
        self,
        base_url: str | None = None,
        session: Session | None = None,
        navigate: Callable[[str], None] | None = None,
        location: str = "/",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        settings = settings or ClientSettings()
        self.session = session or Session(FileTokenStore(settings.SESSION_FILE))
        self.navigate = navigate
        self.location = location
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.API_URL,
            timeout=timeout if timeout is not None else settings.TIMEOUT,
            transport=transport,
        )

        self.auth = AuthApi(self)
        self.products = ProductsApi(self)
        self.orders = OrdersApi(self)
        self.users = UsersApi(self)
        self.branches = BranchesApi(self)

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def go(self, path: str) -> None:
        self.location = path
        if self.navigate is not None:
            self.navigate(path)

    def _on_unauthorized(self) -> None:
        self.session.clear()
        if self.location != LOGIN_ROUTE:
            logger.info("Session rejected by server; redirecting to %s", LOGIN_ROUTE)
            self.go(LOGIN_ROUTE)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: Any = None,
        files: Any = None,
    ) -> httpx.Response:
        headers = {}
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"

        try:
            response = await self._http.request(
                method, path, params=params, json=json, files=files, headers=headers
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransportError(f"Network error: {exc}") from exc

        if response.status_code == 401:
            self._on_unauthorized()
        if response.is_error:
            error = error_from_response(response)
            logger.warning("%s %s -> %s %s", method, path, response.status_code, error.message)
            raise error
        return response

    async def get(self, path: str, **params: Any) -> Any:
        return (await self.request("GET", path, params=_params(**params))).json()

    async def post(self, path: str, body: Any = None) -> Any:
        return (await self.request("POST", path, json=body)).json()

    async def put(self, path: str, body: Any = None) -> Any:
        return (await self.request("PUT", path, json=body)).json()

    async def patch(self, path: str, body: Any = None) -> Any:
        return (await self.request("PATCH", path, json=body)).json()

    async def delete(self, path: str) -> Any:
        return (await self.request("DELETE", path)).json()


class _Resource:
    def __init__(self, client: ApiClient) -> None:
        self.client = client


# ── Auth ────────────────────────────────────────────────────────────
class AuthApi(_Resource):
    async def login(self, username: str, password: str) -> dict:
        data = await self.client.post("/auth/login", {"username": username, "password": password})
        self.client.session.store(data["token"], data["user"])
        return data

    async def register(
        self, username: str, password: str, branch: str | None = None
    ) -> dict:
        body = {"username": username, "password": password, "position": "worker"}
        if branch:
            body["branch"] = branch
        data = await self.client.post("/auth/register", body)
        self.client.session.store(data["token"], data["user"])
        return data

    async def me(self) -> dict:
        user = await self.client.get("/auth/me")
        self.client.session.set_user(user)
        return user

    async def logout(self) -> None:
        """Tell the server, but forget the session locally no matter what."""
        try:
            if self.client.session.token:
                await self.client.post("/auth/logout")
        except ApiError as exc:
            logger.warning("Server logout failed: %s", exc.message)
        finally:
            self.client.session.clear()


# ── Products ────────────────────────────────────────────────────────
class ProductsApi(_Resource):
    async def list(
        self,
        category: str | None = None,
        search: str | None = None,
        active: str | None = None,
    ) -> dict:
        return await self.client.get("/products", category=category, search=search, active=active)

    async def get(self, product_id: int) -> dict:
        return await self.client.get(f"/products/{product_id}")

    async def create(self, data: dict) -> dict:
        return await self.client.post("/products", data)

    async def update(self, product_id: int, data: dict) -> dict:
        return await self.client.put(f"/products/{product_id}", data)

    async def toggle_status(self, product_id: int) -> dict:
        return await self.client.patch(f"/products/{product_id}/toggle-status")

    async def delete(self, product_id: int) -> dict:
        return await self.client.delete(f"/products/{product_id}")

    async def categories(self) -> list[str]:
        return (await self.client.get("/products/meta/categories"))["categories"]

    async def units(self) -> list[str]:
        return (await self.client.get("/products/meta/units"))["units"]

    async def upload_images(self, files: list[tuple[str, bytes, str]]) -> list[dict]:
        """``files`` are ``(filename, content, content_type)`` triples."""
        response = await self.client.request(
            "POST",
            "/products/upload-images",
            files=[("images", (name, content, ctype)) for name, content, ctype in files],
        )
        return response.json()["images"]


# ── Orders ──────────────────────────────────────────────────────────
class OrdersApi(_Resource):
    async def list(
        self,
        day: date | str | None = None,
        month: int | None = None,
        year: int | None = None,
        branch: str | None = None,
        status: str | None = None,
        page: int | None = None,
        limit: int | None = None,
        view_all: bool | None = None,
    ) -> dict:
        data = await self.client.get(
            "/orders",
            date=day,
            month=month,
            year=year,
            branch=branch,
            status=status,
            page=page,
            limit=limit,
            view_all=view_all,
        )
        data["orders"] = [normalize_order(o) for o in data["orders"]]
        return data

    async def get(self, order_id: int) -> dict:
        return normalize_order(await self.client.get(f"/orders/{order_id}"))

    async def create(self, data: dict) -> dict:
        return normalize_order(await self.client.post("/orders", data))

    async def update(self, order_id: int, data: dict) -> dict:
        return normalize_order(await self.client.put(f"/orders/{order_id}", data))

    async def update_status(
        self, order_id: int, status: str, admin_notes: str | None = None
    ) -> dict:
        body = {"status": status}
        if admin_notes is not None:
            body["admin_notes"] = admin_notes
        return normalize_order(await self.client.patch(f"/orders/{order_id}/status", body))

    async def bulk_update_status(
        self, order_ids: list[int], status: str, admin_notes: str | None = None
    ) -> dict:
        body: dict[str, Any] = {"order_ids": order_ids, "status": status}
        if admin_notes is not None:
            body["admin_notes"] = admin_notes
        data = await self.client.patch("/orders/bulk/status", body)
        data["orders"] = [normalize_order(o) for o in data["orders"]]
        return data

    async def delete(self, order_id: int) -> dict:
        return await self.client.delete(f"/orders/{order_id}")

    async def export(self, day: date | str, branch: str | None = None) -> list[dict]:
        data = await self.client.get("/orders/export/pdf", date=day, branch=branch)
        return [normalize_order(o) for o in data["orders"]]

    async def download_pdf(self, day: date | str, branch: str | None = None) -> bytes:
        response = await self.client.request(
            "GET", "/orders/download/pdf", params=_params(date=day, branch=branch)
        )
        return response.content

    async def dashboard_stats(self) -> dict:
        return await self.client.get("/orders/stats/dashboard")

    async def branch_analytics(
        self, timeframe: str = "week", month: int | None = None, year: int | None = None
    ) -> dict:
        return await self.client.get(
            "/orders/analytics/branches", timeframe=timeframe, month=month, year=year
        )

    async def product_insights(
        self, timeframe: str = "week", month: int | None = None, year: int | None = None
    ) -> dict:
        return await self.client.get(
            "/orders/analytics/products", timeframe=timeframe, month=month, year=year
        )

    async def financial_metrics(self) -> dict:
        return await self.client.get("/orders/analytics/financial")


# ── Users ───────────────────────────────────────────────────────────
class UsersApi(_Resource):
    async def list(
        self,
        position: str | None = None,
        active: str | None = None,
        search: str | None = None,
    ) -> dict:
        return await self.client.get("/users", position=position, active=active, search=search)

    async def get(self, user_id: int) -> dict:
        return await self.client.get(f"/users/{user_id}")

    async def create(self, data: dict) -> dict:
        return await self.client.post("/users", data)

    async def update(self, user_id: int, data: dict) -> dict:
        return await self.client.put(f"/users/{user_id}", data)

    async def toggle_status(self, user_id: int) -> dict:
        return await self.client.patch(f"/users/{user_id}/toggle-status")

    async def delete(self, user_id: int) -> dict:
        return await self.client.delete(f"/users/{user_id}")

    async def stats(self) -> dict:
        return await self.client.get("/users/stats/overview")

    async def branches(self) -> list[str]:
        return (await self.client.get("/users/meta/branches"))["branches"]


# ── Branches ────────────────────────────────────────────────────────
class BranchesApi(_Resource):
    async def list(self) -> list[dict]:
        return (await self.client.get("/branches"))["branches"]

    async def names(self) -> list[str]:
        return (await self.client.get("/branches/names"))["branches"]

    async def get(self, name: str) -> dict:
        return await self.client.get(f"/branches/{name}")

    async def create(self, name: str, description: str | None = None) -> dict:
        return await self.client.post("/branches", {"name": name, "description": description})

    async def update(self, name: str, new_name: str, description: str | None = None) -> dict:
        return await self.client.put(
            f"/branches/{name}", {"name": new_name, "description": description}
        )

    async def delete(self, name: str) -> dict:
        return await self.client.delete(f"/branches/{name}")
