"""
API Gateway
Version: 1.0

HTTP client for the upstream booking API.
DEPENDS ON: config.py
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


class HttpMethod(Enum):
    """HTTP methods."""
    GET = "GET"
    PUT = "PUT"


@dataclass
class APIResponse:
    """Structured API response."""
    success: bool
    status_code: int
    data: Any
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    headers: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        if self.success:
            return {
                "success": True,
                "data": self.data,
                "status_code": self.status_code
            }
        return {
            "success": False,
            "error": self.error_message,
            "error_code": self.error_code,
            "status_code": self.status_code
        }


class APIGateway:
    """
    API Gateway for the booking API.

    Features:
    - Bearer token forwarding
    - Retry with exponential backoff
    - Connection pooling
    """

    DEFAULT_MAX_RETRIES = 2
    DEFAULT_TIMEOUT = 30.0
    RETRY_STATUS_CODES = {408, 429, 500, 502, 503, 504}

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize API Gateway.

        Args:
            base_url: Booking API base URL
            token: Bearer token sent on every request
            timeout: Request timeout in seconds
            max_retries: Retries after the first attempt
            client: Preconfigured httpx client (tests inject a MockTransport here)
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.max_retries = self.DEFAULT_MAX_RETRIES if max_retries is None else max_retries

        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout or self.DEFAULT_TIMEOUT, connect=10.0),
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
            follow_redirects=True
        )

        logger.info(f"APIGateway initialized: {self.base_url}")

    async def execute(
        self,
        method: HttpMethod,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        max_retries: Optional[int] = None
    ) -> APIResponse:
        """
        Execute HTTP request.

        Args:
            method: HTTP method
            path: API path
            params: Query parameters
            body: Request body
            headers: Additional headers
            max_retries: Override retry count

        Returns:
            APIResponse (never raises for HTTP or network failures)
        """
        url = self._build_url(path, params)
        retries = max_retries if max_retries is not None else self.max_retries

        request_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.token:
            request_headers["Authorization"] = f"Bearer {self.token}"
        if headers:
            request_headers.update(headers)

        last_error = None

        for attempt in range(retries + 1):
            try:
                logger.debug(f"API Request: {method.value} {path}")

                response = await self._do_request(method, url, request_headers, body)

                if response.status_code in self.RETRY_STATUS_CODES and attempt < retries:
                    delay = self._calculate_backoff(attempt)
                    logger.warning(f"Retryable error {response.status_code}, delay={delay:.2f}s")
                    await asyncio.sleep(delay)
                    continue

                return self._parse_response(response)

            except httpx.TimeoutException as e:
                last_error = f"Timeout: {e}"
            except httpx.RequestError as e:
                last_error = f"Network error: {e}"

            if attempt < retries:
                await asyncio.sleep(self._calculate_backoff(attempt))

        logger.error(f"All retries exhausted: {last_error}")
        return APIResponse(
            success=False,
            status_code=0,
            data=None,
            error_message=last_error or "Request failed",
            error_code="RETRY_EXHAUSTED"
        )

    async def _do_request(
        self,
        method: HttpMethod,
        url: str,
        headers: Dict[str, str],
        body: Optional[Dict[str, Any]]
    ) -> httpx.Response:
        """Execute raw HTTP request. Bookings are only read and status-updated."""
        if method == HttpMethod.GET:
            return await self.client.get(url, headers=headers)
        return await self.client.put(url, headers=headers, json=body)

    def _build_url(self, path: str, params: Optional[Dict[str, Any]]) -> str:
        """Build URL; absolute paths are used as-is."""
        if path.startswith("http://") or path.startswith("https://"):
            url = path
        else:
            if not path.startswith("/"):
                path = "/" + path
            url = f"{self.base_url}{path}"

        if params:
            clean = {k: v for k, v in params.items() if v is not None}
            if clean:
                parts = [f"{k}={quote(str(v), safe='')}" for k, v in clean.items()]
                url = f"{url}?{'&'.join(parts)}"
        return url

    def _parse_response(self, response: httpx.Response) -> APIResponse:
        """
        Parse HTTP response.

        HTML bodies (login redirects, proxy error pages) are reported as
        failures even with a 2xx status.
        """
        headers_dict = dict(response.headers)
        content_type = response.headers.get("content-type", "").lower()
        body_start = response.text.lstrip()[:15].lower()

        if "text/html" in content_type or body_start.startswith(("<!doctype", "<html")):
            logger.error(
                f"HTML response blocked: Status={response.status_code}, "
                f"Content-Type={content_type}"
            )
            status = 401 if response.status_code == 200 else response.status_code
            return APIResponse(
                success=False,
                status_code=status,
                data=None,
                error_message="Booking API returned an HTML page instead of data",
                error_code="HTML_RESPONSE_ERROR",
                headers=headers_dict
            )

        if response.status_code >= 400:
            error_msg = self._extract_error_message(response)
            error_code = self._map_status_code(response.status_code)

            logger.warning(f"API error: {response.status_code} - {error_msg[:200]}")

            return APIResponse(
                success=False,
                status_code=response.status_code,
                data=None,
                error_message=error_msg,
                error_code=error_code,
                headers=headers_dict
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"JSON parsing failed: {e}")
            data = response.text if response.text else None

        return APIResponse(
            success=True,
            status_code=response.status_code,
            data=data,
            headers=headers_dict
        )

    def _extract_error_message(self, response: httpx.Response) -> str:
        """Extract error message from response."""
        try:
            data = response.json()
        except ValueError:
            return f"HTTP {response.status_code}: {response.text[:500]}"

        if isinstance(data, dict):
            for field in ["message", "error", "detail", "title"]:
                if data.get(field):
                    return str(data[field])
            return str(data)[:500]
        return response.text[:500]

    def _map_status_code(self, status: int) -> str:
        """Map status code to error code."""
        mapping = {
            400: "BAD_REQUEST",
            401: "UNAUTHORIZED",
            403: "FORBIDDEN",
            404: "NOT_FOUND",
            405: "METHOD_NOT_ALLOWED",
            409: "CONFLICT",
            422: "VALIDATION_ERROR",
            429: "RATE_LIMITED",
            500: "SERVER_ERROR",
            502: "BAD_GATEWAY",
            503: "SERVICE_UNAVAILABLE"
        }
        return mapping.get(status, f"HTTP_{status}")

    def _calculate_backoff(self, attempt: int) -> float:
        """Calculate exponential backoff."""
        base = 2 ** attempt
        jitter = random.uniform(0, 0.5)
        return min(base + jitter, 30)

    # === CONVENIENCE METHODS ===

    async def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> APIResponse:
        """GET request."""
        return await self.execute(HttpMethod.GET, path, params=params, **kwargs)

    async def put(self, path: str, body: Optional[Dict] = None, **kwargs) -> APIResponse:
        """PUT request."""
        return await self.execute(HttpMethod.PUT, path, body=body, **kwargs)

    async def close(self) -> None:
        """Close HTTP client."""
        if self.client:
            await self.client.aclose()
            logger.info("APIGateway closed")
