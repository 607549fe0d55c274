"""
Tests for the API client: session handling, error mapping, role guard.

The client talks to the real app in-process through httpx.ASGITransport.
"""

from datetime import date, timedelta

import httpx
import pytest
from httpx import ASGITransport

from conftest import TEST_PASSWORD
from depot.client.api import DELETED_PRODUCT, ApiClient, normalize_order
from depot.client.config import ClientSettings
from depot.client.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    TransportError,
    ValidationError,
    error_from_response,
    error_message,
)
from depot.client.guard import LOGIN_ROUTE, guard_route, home_route
from depot.client.session import FileTokenStore, MemoryTokenStore, Session, SessionUser
from depot.main import app

BASE_URL = "http://test/api"


@pytest.fixture
def visited():
    return []


@pytest.fixture
async def client(visited):
    api = ApiClient(
        base_url=BASE_URL,
        session=Session(MemoryTokenStore()),
        navigate=visited.append,
        transport=ASGITransport(app=app),
    )
    yield api
    await api.aclose()


def _order_body(product_id: int) -> dict:
    return {
        "requested_date": (date.today() + timedelta(days=1)).isoformat(),
        "items": [{"product_id": product_id, "quantity": 3}],
    }


# ── Session ─────────────────────────────────────────────────────────
async def test_login_stores_session(client, worker_user):
    data = await client.auth.login("worker", TEST_PASSWORD)

    assert data["message"] == "Login successful"
    assert client.session.is_authenticated
    assert client.session.user.username == "worker"
    assert client.session.token_store.load()["token"] == data["token"]


async def test_file_token_store_round_trip(tmp_path):
    path = tmp_path / "nested" / "session.json"
    first = Session(FileTokenStore(path))
    first.store("abc", {"id": 1, "username": "chef", "position": "worker", "branch": "North"})

    second = Session(FileTokenStore(path))
    assert second.load() is True
    assert second.token == "abc"
    assert second.user == SessionUser(id=1, username="chef", position="worker", branch="North")

    second.clear()
    assert not path.exists()
    assert Session(FileTokenStore(path)).load() is False


async def test_default_client_persists_session_to_file(tmp_path, worker_user):
    path = tmp_path / "session.json"
    async with ApiClient(
        base_url=BASE_URL,
        transport=ASGITransport(app=app),
        settings=ClientSettings(SESSION_FILE=path),
    ) as api:
        await api.auth.login("worker", TEST_PASSWORD)
        token = api.session.token

    restored = Session(FileTokenStore(path))
    assert restored.load() is True
    assert restored.token == token
    assert restored.user.username == "worker"


async def test_session_discards_malformed_user():
    store = MemoryTokenStore({"token": "abc", "user": {"username": "no-id"}})
    session = Session(store)
    assert session.load() is False
    assert session.token is None
    assert store.data is None


async def test_bearer_token_is_sent(client, worker_user):
    await client.auth.login("worker", TEST_PASSWORD)
    me = await client.auth.me()
    assert me["username"] == "worker"
    assert me["branch"] == "Test Branch"


async def test_unauthorized_clears_session_and_redirects(client, visited):
    client.session.store("not-a-real-token", {"id": 99, "username": "ghost", "position": "admin"})

    with pytest.raises(AuthError) as exc_info:
        await client.products.list()

    assert exc_info.value.status == 401
    assert client.session.token is None
    assert client.session.token_store.load() is None
    assert visited == [LOGIN_ROUTE]
    assert client.location == LOGIN_ROUTE


async def test_unauthorized_on_login_page_does_not_redirect(client, visited, worker_user):
    client.location = LOGIN_ROUTE
    with pytest.raises(AuthError) as exc_info:
        await client.auth.login("worker", "wrong-password")

    assert exc_info.value.message == "Invalid credentials"
    assert visited == []


async def test_forbidden_keeps_session(client, visited, worker_user):
    await client.auth.login("worker", TEST_PASSWORD)
    with pytest.raises(AuthError) as exc_info:
        await client.users.list()

    assert exc_info.value.status == 403
    assert client.session.is_authenticated
    assert visited == []


async def test_logout_clears_session_even_when_server_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": "boom"})

    session = Session(MemoryTokenStore())
    session.store("abc", {"id": 1, "username": "chef", "position": "worker"})
    async with ApiClient(
        base_url=BASE_URL, session=session, transport=httpx.MockTransport(handler)
    ) as api:
        await api.auth.logout()

    assert session.token is None
    assert session.user is None


async def test_logout_round_trip(client, worker_user):
    await client.auth.login("worker", TEST_PASSWORD)
    await client.auth.logout()
    assert not client.session.is_authenticated


# ── Errors ──────────────────────────────────────────────────────────
async def test_validation_error_is_formatted(client):
    with pytest.raises(ValidationError) as exc_info:
        await client.auth.register("ab", "123")

    exc = exc_info.value
    assert exc.status == 400
    assert exc.detail == "Validation failed"
    fields = {e["field"] for e in exc.errors}
    assert {"username", "password"} <= fields
    assert exc.message.startswith("Validation failed: ")
    assert "username: " in exc.message


def test_error_from_response_mapping():
    request = httpx.Request("GET", "http://test/api/x")

    def build(status, body):
        return error_from_response(httpx.Response(status, json=body, request=request))

    missing = build(404, {"detail": "Order not found"})
    assert isinstance(missing, NotFoundError)
    assert missing.message == "Order not found"

    conflict = build(409, {"detail": "Cannot change order status from completed to pending"})
    assert isinstance(conflict, ConflictError)

    invalid = build(400, {"detail": "Validation failed", "errors": [
        {"field": "quantity", "message": "must be at least 1"},
        {"field": "requested_date", "message": "required"},
    ]})
    assert invalid.message == (
        "Validation failed: quantity: must be at least 1, requested_date: required"
    )

    plain = error_from_response(httpx.Response(502, text="Bad gateway", request=request))
    assert plain.status == 502
    assert plain.message == "Bad gateway"


def test_error_message_fallback():
    assert error_message(NotFoundError("Order not found", 404)) == "Order not found"
    assert error_message(RuntimeError("internal")) == "An unexpected error occurred"
    assert error_message(None) == "An unexpected error occurred"


async def test_network_failure_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with ApiClient(base_url=BASE_URL, transport=httpx.MockTransport(handler)) as api:
        with pytest.raises(TransportError) as exc_info:
            await api.products.list()

    assert exc_info.value.status is None
    assert error_message(exc_info.value).startswith("Network error")


# ── Orders ──────────────────────────────────────────────────────────
async def test_illegal_transition_raises_conflict(client, admin_user, worker_user, product):
    worker_client = ApiClient(
        base_url=BASE_URL, session=Session(), transport=ASGITransport(app=app)
    )
    async with worker_client:
        await worker_client.auth.login("worker", TEST_PASSWORD)
        order = await worker_client.orders.create(_order_body(product.id))

    await client.auth.login("admin", TEST_PASSWORD)
    with pytest.raises(ConflictError) as exc_info:
        await client.orders.update_status(order["id"], "completed")
    assert exc_info.value.status == 409

    approved = await client.orders.update_status(order["id"], "approved", admin_notes="ok")
    assert approved["status"] == "approved"
    assert approved["processed_by"]["username"] == "admin"


async def test_deleted_product_gets_placeholder(client, admin_user, worker_user, product):
    await client.auth.login("worker", TEST_PASSWORD)
    order = await client.orders.create(_order_body(product.id))

    await client.auth.login("admin", TEST_PASSWORD)
    await client.products.delete(product.id)

    fetched = await client.orders.get(order["id"])
    line = fetched["items"][0]
    assert line["product_id"] is None
    assert line["product"]["name"] == "Product Deleted"
    assert line["quantity"] == 3

    listed = await client.orders.list(view_all=True)
    assert listed["orders"][0]["items"][0]["product"]["name"] == "Product Deleted"


def test_normalize_order_leaves_live_products():
    product = {"id": 1, "name": "Flour"}
    order = normalize_order({"items": [{"product": product}, {"product": None}]})
    assert order["items"][0]["product"] is product
    assert order["items"][1]["product"] == DELETED_PRODUCT
    assert order["items"][1]["product"] is not DELETED_PRODUCT


# ── Route guard ─────────────────────────────────────────────────────
def _user(position: str) -> SessionUser:
    return SessionUser(id=1, username="someone", position=position)


def test_guard_redirects_anonymous_to_login():
    decision = guard_route(None, "admin")
    assert decision.render is False
    assert decision.redirect == LOGIN_ROUTE


@pytest.mark.parametrize(
    "position,required,redirect",
    [
        ("worker", "admin", "/worker"),
        ("editor", "admin", "/editor"),
        ("admin", "worker", "/admin"),
    ],
)
def test_guard_sends_wrong_role_home(position, required, redirect):
    decision = guard_route(_user(position), required)
    assert decision.render is False
    assert decision.redirect == redirect


def test_guard_renders_matching_role():
    assert guard_route(_user("editor"), "editor").render is True
    assert guard_route(_user("worker")).render is True


def test_home_route_unknown_position():
    assert home_route("chef") == LOGIN_ROUTE
    assert home_route(None) == LOGIN_ROUTE
