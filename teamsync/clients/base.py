"""Base client with retry logic, error handling, and rate limiting."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import httpx
import structlog
from asyncio_throttle import Throttler
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from teamsync.clients.exceptions import (
    APIError,
    AuthenticationError,
    AuthorizationError,
    ClientError,
    ConflictError,
    NetworkError,
    RateLimitError,
    ResourceNotFoundError,
    ServerError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class BaseAPIClient(ABC):
    """Abstract base class for API clients with common functionality."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: int = 30,
        rate_limit_per_minute: int = 600,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        user_agent: Optional[str] = None,
    ) -> None:
        """Initialize the base API client.

        Args:
            base_url: Base URL for the API
            timeout_seconds: Request timeout in seconds
            rate_limit_per_minute: Maximum requests per minute
            max_retries: Maximum retry attempts for failed requests
            retry_delay_seconds: Initial delay between retries
            user_agent: Custom user agent string
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.rate_limit_per_minute = rate_limit_per_minute
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds

        headers = {
            "User-Agent": user_agent or self._get_default_user_agent(),
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_seconds),
            headers=headers,
            follow_redirects=True,
        )

        self._throttler = Throttler(rate_limit=rate_limit_per_minute, period=60)

        # Request tracking for logging and debugging
        self._request_count = 0
        self._error_count = 0
        self._last_request_time: Optional[float] = None

        self._logger = logger.bind(
            client_type=self.__class__.__name__,
            base_url=self.base_url,
        )

    async def __aenter__(self) -> "BaseAPIClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        if self._client:
            await self._client.aclose()

    @abstractmethod
    def _get_auth_headers(self) -> Dict[str, str]:
        """Get authentication headers for requests.

        Returns:
            Dictionary of authentication headers
        """
        pass

    def _get_default_user_agent(self) -> str:
        """Get default user agent string."""
        from teamsync.version import __version__
        return f"github-team-sync/{__version__}"

    async def _make_request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make an HTTP request with rate limiting and error handling.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE)
            path: API endpoint path or absolute URL
            params: Query parameters
            json_data: JSON request body
            headers: Additional headers

        Returns:
            HTTP response object

        Raises:
            APIError: If the request fails
        """
        async with self._throttler:
            if path.startswith("http://") or path.startswith("https://"):
                url = path
            else:
                url = f"{self.base_url}/{path.lstrip('/')}"
            request_headers = self._get_auth_headers()
            if headers:
                request_headers.update(headers)

            self._request_count += 1
            self._last_request_time = time.time()

            request_id = f"req_{self._request_count}"

            self._logger.debug(
                "Making API request",
                request_id=request_id,
                method=method,
                url=url,
                params=params,
                has_json_data=json_data is not None,
            )

            try:
                response = await self._client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json_data,
                    headers=request_headers,
                )
            except httpx.RequestError as e:
                self._error_count += 1
                self._logger.error(
                    "Network error during API request",
                    request_id=request_id,
                    error=str(e),
                )
                raise NetworkError(f"Network error: {e}") from e

            self._logger.debug(
                "API request completed",
                request_id=request_id,
                status_code=response.status_code,
                response_size=len(response.content),
            )

            if response.is_success:
                return response

            self._error_count += 1
            raise self._error_for_response(response)

    def _error_for_response(self, response: httpx.Response) -> APIError:
        """Map an unsuccessful response to the matching exception."""
        status_code = response.status_code
        text = response.text

        if status_code == 401:
            return AuthenticationError(
                "Authentication failed", status_code=status_code, response_text=text
            )
        if status_code == 429 or (
            status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"
        ):
            return RateLimitError(
                "Rate limit exceeded",
                status_code=status_code,
                response_text=text,
                retry_after=self._get_retry_after(response),
            )
        if status_code == 403:
            return AuthorizationError(
                "Permission denied", status_code=status_code, response_text=text
            )
        if status_code == 404:
            return ResourceNotFoundError(
                "Resource not found", status_code=status_code, response_text=text
            )
        if status_code in (409, 422):
            return ConflictError(
                f"Request conflicts with current state: {status_code}",
                status_code=status_code,
                response_text=text,
            )
        if 400 <= status_code < 500:
            return ClientError(
                f"Client error: {status_code}", status_code=status_code, response_text=text
            )
        if 500 <= status_code < 600:
            return ServerError(
                f"Server error: {status_code}", status_code=status_code, response_text=text
            )
        return APIError(
            f"Unexpected status code: {status_code}",
            status_code=status_code,
            response_text=text,
        )

    def _get_retry_after(self, response: httpx.Response) -> Optional[int]:
        """Extract retry-after value from response headers.

        Args:
            response: HTTP response

        Returns:
            Retry-after value in seconds, or None if not present
        """
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return int(retry_after)
            except ValueError:
                pass
        return None

    async def _sleep(self, seconds: float) -> None:
        """Sleep between retry attempts."""
        await asyncio.sleep(seconds)

    def _retry_wait(self) -> Callable[[RetryCallState], float]:
        """Build the wait strategy used between retry attempts.

        Exponential backoff, stretched to the server's Retry-After value
        when the previous attempt was rate limited.
        """
        backoff = wait_exponential(
            multiplier=self.retry_delay_seconds,
            min=self.retry_delay_seconds,
            max=60,
        )

        def wait(retry_state: RetryCallState) -> float:
            delay = backoff(retry_state)
            error = retry_state.outcome.exception() if retry_state.outcome else None
            if isinstance(error, RateLimitError) and error.retry_after:
                self._logger.info(
                    "Rate limit hit, waiting before retry",
                    retry_after=error.retry_after,
                    attempt_number=retry_state.attempt_number,
                )
                delay = max(delay, float(error.retry_after))
            return delay

        return wait

    async def with_retry(
        self,
        operation_name: str,
        operation: Callable[[], Awaitable[T]],
        retry_on_rate_limit: bool = True,
    ) -> T:
        """Execute an operation with automatic retry logic.

        Args:
            operation_name: Name of the operation for logging
            operation: Coroutine function to execute
            retry_on_rate_limit: Whether to retry on rate limit errors

        Returns:
            Result of the operation

        Raises:
            APIError: If the operation fails after all retries
        """
        retryable: tuple = (ServerError, NetworkError)
        if retry_on_rate_limit:
            retryable = retryable + (RateLimitError,)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries + 1),
                wait=self._retry_wait(),
                retry=retry_if_exception_type(retryable),
                sleep=self._sleep,
                reraise=True,
            ):
                with attempt:
                    self._logger.debug(
                        "Executing operation with retry",
                        operation=operation_name,
                        attempt_number=attempt.retry_state.attempt_number,
                    )
                    return await operation()
        except Exception as e:
            self._logger.error(
                "Operation failed after all retries",
                operation=operation_name,
                error=str(e),
                error_type=type(e).__name__,
                attempts=self.max_retries + 1,
            )
            raise

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make a GET request."""
        return await self._make_request("GET", path, params=params, headers=headers)

    async def post(
        self,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make a POST request."""
        return await self._make_request(
            "POST", path, params=params, json_data=json_data, headers=headers
        )

    async def put(
        self,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make a PUT request."""
        return await self._make_request(
            "PUT", path, params=params, json_data=json_data, headers=headers
        )

    async def patch(
        self,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make a PATCH request."""
        return await self._make_request(
            "PATCH", path, params=params, json_data=json_data, headers=headers
        )

    async def delete(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make a DELETE request."""
        return await self._make_request("DELETE", path, params=params, headers=headers)

    async def get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Make a GET request and return JSON response.

        Raises:
            APIError: If response is not valid JSON
        """
        response = await self.with_retry(
            f"GET {path}", lambda: self.get(path, params=params, headers=headers)
        )
        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"Failed to parse JSON response: {e}") from e

    async def post_json(
        self,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Make a POST request and return JSON response.

        Raises:
            APIError: If response is not valid JSON
        """
        response = await self.post(path, json_data=json_data, params=params, headers=headers)
        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"Failed to parse JSON response: {e}") from e

    async def paginate(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Paginate through all results for an endpoint.

        Subclasses implement this according to their API's pagination scheme.
        """
        raise NotImplementedError("Subclasses must implement pagination logic")

    def get_stats(self) -> Dict[str, Any]:
        """Get client statistics for monitoring.

        Returns:
            Dictionary with client statistics
        """
        return {
            "request_count": self._request_count,
            "error_count": self._error_count,
            "error_rate": self._error_count / max(self._request_count, 1),
            "last_request_time": self._last_request_time,
            "rate_limit_per_minute": self.rate_limit_per_minute,
            "base_url": self.base_url,
        }

    async def health_check(self) -> bool:
        """Perform a basic health check against the API."""
        raise NotImplementedError("Subclasses must implement health check logic")
