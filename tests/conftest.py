"""Test fixtures and utilities."""

from typing import Callable

import httpx
import pytest

from firefly_tools.config import FireflyConfig
from firefly_tools.firefly_client import FireflyClient, RequestEngine

BASE_URL = "https://firefly.test"
TOKEN = "test-token-12345"


class FakeClock:
    """Monotonic clock whose sleep() only advances time and records the delay."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


Outcome = Callable[[httpx.Request], httpx.Response]


def respond(status: int = 200, json: object = None, text: str | None = None) -> Outcome:
    """Outcome building a fresh response for every request it serves."""

    def build(request: httpx.Request) -> httpx.Response:
        if text is not None:
            return httpx.Response(status, text=text)
        if json is not None:
            return httpx.Response(status, json=json)
        return httpx.Response(status)

    return build


def refuse(request: httpx.Request) -> httpx.Response:
    """Outcome simulating a refused connection."""
    raise httpx.ConnectError("Connection refused", request=request)


class ScriptedServer:
    """Serves outcomes in order; the last one repeats once the script runs out.

    Every request is recorded for later assertions.
    """

    def __init__(self, *outcomes: Outcome):
        self.outcomes = list(outcomes)
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.outcomes) > 1:
            outcome = self.outcomes.pop(0)
        else:
            outcome = self.outcomes[0]
        return outcome(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class RoutedServer:
    """Serves a fixed outcome per (method, path); unknown routes answer 404."""

    def __init__(self, routes: dict[tuple[str, str], Outcome]):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.routes.get((request.method, request.url.path))
        if outcome is None:
            return httpx.Response(404, json={"message": "Resource not found"})
        return outcome(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def settings() -> FireflyConfig:
    """Firefly settings with the default retry policy (3 retries, 1s base delay)."""
    return FireflyConfig(
        base_url=BASE_URL,
        token=TOKEN,
        timeout_ms=30000,
        retry_attempts=3,
        retry_delay_ms=1000,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_engine(settings, clock):
    """Factory building an engine wired to a fake server and the fake clock."""

    def factory(server, **kwargs) -> RequestEngine:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("sleep", clock.sleep)
        return RequestEngine(
            kwargs.pop("settings", settings),
            transport=server.transport,
            **kwargs,
        )

    return factory


@pytest.fixture
def make_client(make_engine):
    def factory(server, **kwargs) -> FireflyClient:
        return FireflyClient(make_engine(server, **kwargs))

    return factory


@pytest.fixture
def account_payload() -> dict:
    """``GET /api/v1/accounts`` with a single asset account."""
    return {
        "data": [
            {
                "type": "accounts",
                "id": "1",
                "attributes": {
                    "created_at": "2024-01-01T10:00:00+00:00",
                    "updated_at": "2024-06-01T10:00:00+00:00",
                    "active": True,
                    "order": 1,
                    "name": "Checking",
                    "type": "asset",
                    "account_role": "defaultAsset",
                    "currency_id": "1",
                    "currency_code": "USD",
                    "currency_symbol": "$",
                    "currency_decimal_places": 2,
                    "current_balance": "100.00",
                    "current_balance_date": "2024-06-01T23:59:59+00:00",
                    "include_net_worth": True,
                },
            }
        ],
        "meta": {
            "pagination": {
                "total": 1,
                "count": 1,
                "per_page": 50,
                "current_page": 1,
                "total_pages": 1,
            }
        },
        "links": {
            "self": f"{BASE_URL}/api/v1/accounts?page=1",
            "first": f"{BASE_URL}/api/v1/accounts?page=1",
            "last": f"{BASE_URL}/api/v1/accounts?page=1",
        },
    }


@pytest.fixture
def transaction_payload() -> dict:
    """``GET /api/v1/transactions`` with one split transaction."""
    return {
        "data": [
            {
                "type": "transactions",
                "id": "42",
                "attributes": {
                    "created_at": "2024-11-18T12:00:00+00:00",
                    "updated_at": "2024-11-18T12:00:00+00:00",
                    "user": "1",
                    "group_title": "SPAR weekly shop",
                    "transactions": [
                        {
                            "transaction_journal_id": "101",
                            "type": "withdrawal",
                            "date": "2024-11-18T00:00:00+01:00",
                            "amount": "8.98",
                            "description": "Food",
                            "currency_code": "EUR",
                            "source_name": "Checking",
                            "destination_name": "SPAR",
                            "category_name": "Groceries",
                            "tags": ["receipt"],
                        },
                        {
                            "transaction_journal_id": "102",
                            "type": "withdrawal",
                            "date": "2024-11-18T00:00:00+01:00",
                            "amount": "2.50",
                            "description": "Cleaning supplies",
                            "currency_code": "EUR",
                            "source_name": "Checking",
                            "destination_name": "SPAR",
                            "category_name": None,
                            "tags": None,
                        },
                    ],
                },
            }
        ],
        "meta": {"pagination": {"total": 1, "count": 1, "per_page": 5, "current_page": 1, "total_pages": 1}},
    }


def category_resource(category_id: str, name: str, notes: str | None = None) -> dict:
    return {
        "data": {
            "type": "categories",
            "id": category_id,
            "attributes": {
                "created_at": "2024-11-19T10:00:00+00:00",
                "updated_at": "2024-11-19T10:00:00+00:00",
                "name": name,
                "notes": notes,
            },
        }
    }


DUPLICATE_CATEGORY_ERROR = {
    "message": "The given data was invalid.",
    "errors": {"name": ["This category already exists."]},
}
