"""
Firefly III API record types.

Firefly speaks JSON:API: every resource arrives as
``{"type": ..., "id": ..., "attributes": {...}}`` wrapped in an envelope
``{"data": ..., "meta": {"pagination": {...}}, "links": {...}}``.
Only the attributes the tools actually read are lifted into fields; the
full attribute mapping is kept on each record for everything else.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass
class Pagination:
    """Pagination block from ``meta.pagination``."""

    total: int = 0
    count: int = 0
    per_page: int = 0
    current_page: int = 1
    total_pages: int = 1

    @classmethod
    def from_api_response(cls, data: dict) -> "Pagination":
        return cls(
            total=int(data.get("total", 0)),
            count=int(data.get("count", 0)),
            per_page=int(data.get("per_page", 0)),
            current_page=int(data.get("current_page", 1)),
            total_pages=int(data.get("total_pages", 1)),
        )


@dataclass
class PaginationLinks:
    """Navigation links from the ``links`` block."""

    self_url: str | None = None
    first: str | None = None
    last: str | None = None
    prev: str | None = None
    next: str | None = None

    @classmethod
    def from_api_response(cls, data: dict) -> "PaginationLinks":
        return cls(
            self_url=data.get("self"),
            first=data.get("first"),
            last=data.get("last"),
            prev=data.get("prev"),
            next=data.get("next"),
        )


@dataclass
class ApiResponse(Generic[T]):
    """Success envelope: ``data`` plus optional pagination and links."""

    data: T
    pagination: Pagination | None = None
    links: PaginationLinks | None = None

    @classmethod
    def from_api_response(
        cls, payload: dict, parse: Callable[[dict], Any]
    ) -> "ApiResponse":
        """Decode an envelope, applying ``parse`` to each resource in ``data``.

        ``data`` may be a single resource or a list of resources; the shape
        is preserved.
        """
        raw = payload.get("data")
        if isinstance(raw, list):
            data: Any = [parse(item) for item in raw]
        elif isinstance(raw, dict):
            data = parse(raw)
        else:
            data = raw

        meta = payload.get("meta") or {}
        pagination = None
        if isinstance(meta.get("pagination"), dict):
            pagination = Pagination.from_api_response(meta["pagination"])

        links = None
        if isinstance(payload.get("links"), dict):
            links = PaginationLinks.from_api_response(payload["links"])

        return cls(data=data, pagination=pagination, links=links)

    @property
    def has_next_page(self) -> bool:
        if self.pagination is None:
            return False
        return self.pagination.current_page < self.pagination.total_pages


@dataclass
class ApiErrorResponse:
    """Error envelope returned by Firefly on non-2xx responses.

    ``errors`` maps field names to validation messages, e.g.
    ``{"name": ["The name has already been taken."]}``.
    """

    message: str
    exception: str | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_api_response(cls, data: dict) -> "ApiErrorResponse":
        errors: dict[str, list[str]] = {}
        raw_errors = data.get("errors")
        if isinstance(raw_errors, dict):
            for name, messages in raw_errors.items():
                if isinstance(messages, list):
                    errors[name] = [str(m) for m in messages]
                else:
                    errors[name] = [str(messages)]

        message = data.get("message")
        return cls(
            message=message if isinstance(message, str) else "",
            exception=data.get("exception"),
            errors=errors,
        )


@dataclass
class Account:
    """Firefly account (asset, expense, revenue, liability, ...)."""

    id: str
    name: str
    account_type: str
    currency_code: str | None = None
    current_balance: str | None = None
    active: bool = True
    type: str = "accounts"
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api_response(cls, data: dict) -> "Account":
        attrs = data.get("attributes", {})
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type", "accounts"),
            name=attrs.get("name", ""),
            account_type=attrs.get("type", ""),
            currency_code=attrs.get("currency_code"),
            current_balance=attrs.get("current_balance"),
            active=attrs.get("active", True),
            attributes=attrs,
        )


@dataclass
class TransactionSplit:
    """One journal line inside a transaction group."""

    transaction_journal_id: str
    type: str
    date: str
    amount: str
    description: str
    currency_code: str | None = None
    source_name: str | None = None
    destination_name: str | None = None
    category_name: str | None = None
    budget_name: str | None = None
    tags: list[str] = field(default_factory=list)
    notes: str | None = None

    @classmethod
    def from_api_response(cls, data: dict) -> "TransactionSplit":
        tags = data.get("tags") or []
        return cls(
            transaction_journal_id=str(data.get("transaction_journal_id", "")),
            type=data.get("type", ""),
            date=data.get("date", ""),
            amount=str(data.get("amount", "0")),
            description=data.get("description", ""),
            currency_code=data.get("currency_code"),
            source_name=data.get("source_name"),
            destination_name=data.get("destination_name"),
            category_name=data.get("category_name"),
            budget_name=data.get("budget_name"),
            tags=[t for t in tags if isinstance(t, str)],
            notes=data.get("notes"),
        )


@dataclass
class Transaction:
    """Firefly transaction group. Splits keep the order Firefly returns."""

    id: str
    splits: list[TransactionSplit] = field(default_factory=list)
    group_title: str | None = None
    type: str = "transactions"

    @classmethod
    def from_api_response(cls, data: dict) -> "Transaction":
        attrs = data.get("attributes", {})
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type", "transactions"),
            group_title=attrs.get("group_title"),
            splits=[
                TransactionSplit.from_api_response(split)
                for split in attrs.get("transactions", [])
            ],
        )

    @property
    def first_split(self) -> TransactionSplit | None:
        return self.splits[0] if self.splits else None


@dataclass
class Budget:
    """Firefly budget."""

    id: str
    name: str
    active: bool = True
    notes: str | None = None
    spent: list[dict[str, Any]] = field(default_factory=list)
    type: str = "budgets"

    @classmethod
    def from_api_response(cls, data: dict) -> "Budget":
        attrs = data.get("attributes", {})
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type", "budgets"),
            name=attrs.get("name", ""),
            active=attrs.get("active", True),
            notes=attrs.get("notes"),
            spent=attrs.get("spent") or [],
        )


@dataclass
class Category:
    """Firefly category."""

    id: str
    name: str
    notes: str | None = None
    type: str = "categories"

    @classmethod
    def from_api_response(cls, data: dict) -> "Category":
        attrs = data.get("attributes", {})
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type", "categories"),
            name=attrs.get("name", ""),
            notes=attrs.get("notes"),
        )


@dataclass
class CreateCategoryRequest:
    """Body of ``POST /api/v1/categories``."""

    name: str
    notes: str | None = None

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"name": self.name}
        if self.notes is not None:
            body["notes"] = self.notes
        return body


@dataclass
class CreateBudgetRequest:
    """Body of ``POST /api/v1/budgets``."""

    name: str
    active: bool = True
    notes: str | None = None

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"name": self.name, "active": self.active}
        if self.notes is not None:
            body["notes"] = self.notes
        return body


@dataclass
class CategoryLocalData:
    """A category as stored in a local import file."""

    name: str
    notes: str | None = None

    def to_request(self) -> CreateCategoryRequest:
        return CreateCategoryRequest(name=self.name, notes=self.notes)
