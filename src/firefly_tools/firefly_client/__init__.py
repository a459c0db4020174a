"""
Firefly III API Client.

Provides:
- Request engine with rate limiting, timeouts and retry/backoff
- Typed accessors for accounts, transactions, budgets and categories
- Category and budget creation
- Connectivity probe

Treats Firefly errors as loud failures tagged network / api / decode.
"""

from .client import FireflyClient
from .engine import (
    ErrorKind,
    FireflyAPIError,
    FireflyConnectionError,
    FireflyDecodeError,
    FireflyError,
    HttpMethod,
    RequestDescriptor,
    RequestEngine,
    SessionStats,
)
from .models import (
    Account,
    ApiErrorResponse,
    ApiResponse,
    Budget,
    Category,
    CategoryLocalData,
    CreateBudgetRequest,
    CreateCategoryRequest,
    Transaction,
    TransactionSplit,
)

__all__ = [
    "FireflyClient",
    "RequestEngine",
    "RequestDescriptor",
    "HttpMethod",
    "SessionStats",
    "ErrorKind",
    "FireflyError",
    "FireflyAPIError",
    "FireflyConnectionError",
    "FireflyDecodeError",
    "Account",
    "ApiErrorResponse",
    "ApiResponse",
    "Budget",
    "Category",
    "CategoryLocalData",
    "CreateBudgetRequest",
    "CreateCategoryRequest",
    "Transaction",
    "TransactionSplit",
]
