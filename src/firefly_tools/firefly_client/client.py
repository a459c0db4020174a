"""
Firefly III API client implementation.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable

import httpx

from .engine import (
    FireflyDecodeError,
    HttpMethod,
    RequestDescriptor,
    RequestEngine,
    SessionStats,
)
from .models import (
    Account,
    ApiResponse,
    Budget,
    Category,
    CreateBudgetRequest,
    CreateCategoryRequest,
    Transaction,
)

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)


class FireflyClient:
    """
    Client for Firefly III API.

    Each accessor picks an endpoint, its query parameters and the expected
    record type, then hands the call to the RequestEngine. Errors from the
    engine propagate unchanged.
    """

    def __init__(self, engine: RequestEngine):
        self.engine = engine

    @classmethod
    def from_config(
        cls,
        config: "Config",
        transport: httpx.AsyncBaseTransport | None = None,
        verbose: bool = False,
    ) -> "FireflyClient":
        """Build a client (and its engine) from loaded configuration.

        Request traces are on when the log level is debug or ``verbose`` is set.
        """
        engine = RequestEngine(
            config.firefly,
            debug=config.logging.is_debug or verbose,
            transport=transport,
        )
        return cls(engine)

    async def __aenter__(self) -> "FireflyClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.engine.aclose()

    async def _get(self, endpoint: str, params: dict | None = None) -> Any:
        return await self.engine.execute(RequestDescriptor(endpoint, params=params))

    async def _post(self, endpoint: str, body: dict) -> Any:
        return await self.engine.execute(
            RequestDescriptor(endpoint, method=HttpMethod.POST, body=body)
        )

    def _envelope(self, payload: Any, parse: Callable[[dict], Any]) -> ApiResponse:
        """Decode a JSON:API envelope; a body without a ``data`` resource is a decode error."""
        if not isinstance(payload, dict):
            raise FireflyDecodeError(
                f"Expected a JSON object in the response, got {type(payload).__name__}"
            )
        if not isinstance(payload.get("data"), (dict, list)):
            raise FireflyDecodeError("Response has no 'data' resource")
        return ApiResponse.from_api_response(payload, parse)

    async def test_connection(self) -> bool:
        """Test connection to Firefly API."""
        return await self.engine.test_connection()

    async def get_about(self) -> dict:
        """Get Firefly III instance information (version, API version, OS)."""
        payload = await self._get("/api/v1/about")
        if not isinstance(payload, dict):
            return {}
        return payload.get("data", {})

    async def get_accounts(self, account_type: str | None = None) -> ApiResponse[list[Account]]:
        """
        List accounts.

        Args:
            account_type: Optional filter: asset, expense, revenue, liability, cash
        """
        params = {"type": account_type} if account_type else None
        payload = await self._get("/api/v1/accounts", params)
        return self._envelope(payload, Account.from_api_response)

    async def get_account(self, account_id: str) -> ApiResponse[Account]:
        payload = await self._get(f"/api/v1/accounts/{account_id}")
        return self._envelope(payload, Account.from_api_response)

    async def get_transactions(
        self, params: dict[str, str | int] | None = None
    ) -> ApiResponse[list[Transaction]]:
        """
        List transactions.

        Args:
            params: Query filters passed through as-is
                (e.g. ``{"limit": 5, "start": "2024-01-01", "type": "withdrawal"}``)
        """
        payload = await self._get("/api/v1/transactions", params)
        return self._envelope(payload, Transaction.from_api_response)

    async def get_transaction(self, transaction_id: str) -> ApiResponse[Transaction]:
        payload = await self._get(f"/api/v1/transactions/{transaction_id}")
        return self._envelope(payload, Transaction.from_api_response)

    async def get_budgets(self) -> ApiResponse[list[Budget]]:
        payload = await self._get("/api/v1/budgets")
        return self._envelope(payload, Budget.from_api_response)

    async def get_budget(self, budget_id: str) -> ApiResponse[Budget]:
        payload = await self._get(f"/api/v1/budgets/{budget_id}")
        return self._envelope(payload, Budget.from_api_response)

    async def create_budget(self, request: CreateBudgetRequest) -> ApiResponse[Budget]:
        payload = await self._post("/api/v1/budgets", request.to_dict())
        budget = self._envelope(payload, Budget.from_api_response)
        logger.info(f"Created Firefly budget id={budget.data.id}")
        return budget

    async def get_categories(self) -> ApiResponse[list[Category]]:
        payload = await self._get("/api/v1/categories")
        return self._envelope(payload, Category.from_api_response)

    async def get_category(self, category_id: str) -> ApiResponse[Category]:
        payload = await self._get(f"/api/v1/categories/{category_id}")
        return self._envelope(payload, Category.from_api_response)

    async def create_category(self, request: CreateCategoryRequest) -> ApiResponse[Category]:
        """
        Create a category.

        Raises:
            FireflyAPIError: 422 when the name is already taken
        """
        payload = await self._post("/api/v1/categories", request.to_dict())
        category = self._envelope(payload, Category.from_api_response)
        logger.info(f"Created Firefly category id={category.data.id}")
        return category

    def get_stats(self) -> SessionStats:
        return self.engine.get_stats()
