"""
Request execution engine.

Turns one logical API call (a RequestDescriptor) into an HTTP exchange:

    rate-limit gate -> URL/body construction -> retry loop -> classification

Failures are raised as FireflyError subclasses carrying a ``kind`` tag
(network / api / decode), so callers can branch on ``err.kind`` and
``err.status`` instead of on the exception class.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

import httpx

from .. import __version__
from .models import ApiErrorResponse

if TYPE_CHECKING:
    from ..config import FireflyConfig

logger = logging.getLogger(__name__)

SUPPORTED_FIREFLY_VERSION = "6.x"
USER_AGENT = (
    f"Firefly-Tools-Python/{__version__} "
    f"(Compatible with Firefly III v{SUPPORTED_FIREFLY_VERSION})"
)


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


_BODY_METHODS = frozenset({HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH})


class ErrorKind(str, Enum):
    """Failure classification.

    - NETWORK: no HTTP response (refused, DNS, timeout)
    - API: server answered with a non-2xx status
    - DECODE: server answered 2xx but the body is not JSON
    """

    NETWORK = "network"
    API = "api"
    DECODE = "decode"


class FireflyError(Exception):
    """Base exception for Firefly client errors."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.NETWORK,
        status: int | None = None,
        detail: ApiErrorResponse | None = None,
    ):
        self.kind = kind
        self.message = message
        self.status = status
        self.detail = detail
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Everything except a 4xx API error may be retried."""
        return True


class FireflyAPIError(FireflyError):
    """API returned an error response."""

    def __init__(
        self,
        status_code: int,
        message: str,
        detail: ApiErrorResponse | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message, kind=ErrorKind.API, status=status_code, detail=detail)
        self.status_code = status_code
        self.response_body = response_body
        self.errors = detail.errors if detail else {}

        # Build detailed error message
        error_details = []
        for name, msgs in self.errors.items():
            error_details.extend([f"{name}: {m}" for m in msgs])

        detail_str = "; ".join(error_details) if error_details else message
        self.args = (f"Firefly API error {status_code}: {detail_str}",)

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    @property
    def retryable(self) -> bool:
        return not self.is_client_error


class FireflyConnectionError(FireflyError):
    """Failed to reach Firefly (connection refused, DNS, timeout)."""

    def __init__(self, message: str):
        super().__init__(message, kind=ErrorKind.NETWORK)


class FireflyDecodeError(FireflyError):
    """A success response whose body is not valid JSON."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message, kind=ErrorKind.DECODE, status=status)


@dataclass(frozen=True)
class RequestDescriptor:
    """One logical API call."""

    endpoint: str
    method: HttpMethod = HttpMethod.GET
    body: dict[str, Any] | None = None
    params: dict[str, str | int | float] | None = None


@dataclass(frozen=True)
class SessionStats:
    """Snapshot of the engine's session counters."""

    request_count: int
    last_request_time: float | None


class RequestEngine:
    """
    Executes RequestDescriptors against a Firefly III instance.

    Features:
    - Minimum spacing between calls (best-effort, no lock)
    - Hard per-attempt deadline
    - Retry with exponential backoff for network errors and 5xx
    - 4xx errors propagate after a single attempt

    ``clock`` and ``sleep`` are injectable so tests can drive time without
    waiting on the wall clock; ``transport`` lets tests swap in an
    ``httpx.MockTransport``.
    """

    MIN_REQUEST_INTERVAL = 0.1  # seconds
    PROBE_ENDPOINT = "/api/v1/about"

    def __init__(
        self,
        settings: "FireflyConfig",
        *,
        debug: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        log: logging.Logger | None = None,
    ):
        """
        Initialize the engine.

        Args:
            settings: Validated Firefly settings (URL, token, timeout, retries)
            debug: Emit per-request trace lines
            transport: Optional httpx transport (tests)
            clock: Monotonic clock in seconds
            sleep: Coroutine function used for every wait
            log: Logger receiving traces and retry notices
        """
        self.base_url = settings.base_url.rstrip("/")
        self.timeout = settings.timeout_ms / 1000
        self.retry_attempts = settings.retry_attempts
        self.retry_delay = settings.retry_delay_ms / 1000
        self.debug = debug
        self.log = log or logger

        self._clock = clock
        self._sleep = sleep
        self._last_request_time: float | None = None
        self._request_count = 0

        self._client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {settings.token}",
                "Content-Type": "application/json",
                "Accept": "application/vnd.api+json",
                "User-Agent": USER_AGENT,
            },
            timeout=httpx.Timeout(self.timeout),
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "RequestEngine":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def execute(self, descriptor: RequestDescriptor) -> Any:
        """
        Run one logical call and return the decoded JSON payload.

        Raises:
            FireflyAPIError: non-2xx response (4xx immediately, 5xx after retries)
            FireflyConnectionError: network failure or timeout after retries
            FireflyDecodeError: 2xx response with a non-JSON body after retries
        """
        await self._wait_for_rate_limit()

        method = HttpMethod(descriptor.method)
        url = f"{self.base_url}{descriptor.endpoint}"
        params = None
        if descriptor.params:
            params = {key: str(value) for key, value in descriptor.params.items()}

        content = None
        if descriptor.body is not None and method in _BODY_METHODS:
            content = json.dumps(descriptor.body)

        return await self._execute_with_retry(method, url, params, content)

    async def _wait_for_rate_limit(self) -> None:
        """Keep at least MIN_REQUEST_INTERVAL between consecutive calls.

        The timestamp is taken once per execute(), not per retry attempt.
        """
        if self._last_request_time is not None:
            elapsed = self._clock() - self._last_request_time
            if elapsed < self.MIN_REQUEST_INTERVAL:
                await self._sleep(self.MIN_REQUEST_INTERVAL - elapsed)

        self._last_request_time = self._clock()

    async def _execute_with_retry(
        self,
        method: HttpMethod,
        url: str,
        params: dict[str, str] | None,
        content: str | None,
    ) -> Any:
        last_error: FireflyError | None = None
        total_attempts = self.retry_attempts + 1

        for attempt in range(total_attempts):
            try:
                return await self._attempt(method, url, params, content)
            except FireflyError as e:
                if not e.retryable:
                    raise
                last_error = e

            if attempt < self.retry_attempts:
                delay = self.retry_delay * (2**attempt)
                self.log.warning(
                    "Request failed (attempt %d/%d), retrying in %dms: %s",
                    attempt + 1,
                    total_attempts,
                    round(delay * 1000),
                    last_error,
                )
                await self._sleep(delay)

        if last_error is not None:
            raise last_error
        raise FireflyError("Request failed after all retry attempts")

    async def _attempt(
        self,
        method: HttpMethod,
        url: str,
        params: dict[str, str] | None,
        content: str | None,
    ) -> Any:
        """Single dispatch bounded by the configured deadline."""
        if self.debug:
            self.log.debug("[FireflyAPI] %s %s", method.value, url)

        try:
            response = await asyncio.wait_for(
                self._client.request(method.value, url, params=params, content=content),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise FireflyConnectionError(
                f"Request to Firefly timed out after {round(self.timeout * 1000)}ms"
            ) from e
        except httpx.RequestError as e:
            raise FireflyConnectionError(
                f"Failed to connect to Firefly at {self.base_url}: {e}"
            ) from e
        finally:
            self._request_count += 1

        if not response.is_success:
            raise self._build_api_error(response)

        # 204 No Content and friends
        if not response.content:
            data = None
        else:
            try:
                data = response.json()
            except ValueError as e:
                raise FireflyDecodeError(
                    f"Invalid JSON in response from {url}", status=response.status_code
                ) from e

        if self.debug:
            self.log.debug("[FireflyAPI] Response %d: %s", response.status_code, data)
        return data

    def _build_api_error(self, response: httpx.Response) -> FireflyAPIError:
        """Classify a non-2xx response, falling back to a synthesized message."""
        fallback = f"HTTP {response.status_code}: {response.reason_phrase}"

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            detail = ApiErrorResponse.from_api_response(payload)
            if not detail.message:
                detail.message = fallback
        else:
            detail = ApiErrorResponse(message=fallback)

        self.log.debug(
            "API Error %d: %s %s", response.status_code, detail.message, detail.errors
        )

        return FireflyAPIError(
            status_code=response.status_code,
            message=detail.message,
            detail=detail,
            response_body=response.text,
        )

    async def test_connection(self) -> bool:
        """Probe the about endpoint; never raises."""
        try:
            await self.execute(RequestDescriptor(self.PROBE_ENDPOINT))
            return True
        except Exception as e:
            self.log.error("API connection test failed: %s", e)
            return False

    def get_stats(self) -> SessionStats:
        return SessionStats(
            request_count=self._request_count,
            last_request_time=self._last_request_time,
        )
