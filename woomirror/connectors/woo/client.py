"""WooMirror: Remote Store API Client.

Handles authentication, retry logic, rate limiting, and pagination.
Failures are returned as ``FetchResult(success=False)`` instead of raised.
"""

import asyncio
from typing import Any, Dict, List, Optional

import httpx

from woomirror.config import settings
from woomirror.core.logging import get_logger
from woomirror.models.sync_models import FetchResult

logger = get_logger("woo.client")

RESOURCE_PATHS = {
    "products": "wc/v3/products",
    "orders": "wc/v3/orders",
    "customers": "wc/v3/customers",
    "coupons": "wc/v3/coupons",
    "subscriptions": "wc/v1/subscriptions",
}
AUTH_MODES = ("qs", "basic")
ERROR_BODY_LIMIT = 240


class WooAPIError(Exception):
    """Raised internally when a request fails after all retries."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.text
    except Exception:
        body = ""
    return f"HTTP {response.status_code} {body[:ERROR_BODY_LIMIT]}".strip()


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    raw = response.headers.get("retry-after")
    if not raw:
        return None
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return None


class WooClient:
    """Async HTTP client for the WooCommerce REST API."""

    def __init__(
        self,
        base_url: str,
        consumer_key: str | None,
        consumer_secret: str | None,
        auth_mode: str | None = None,
        per_page: int | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_base_delay: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.auth_mode = auth_mode or settings.woo_auth_mode
        if self.auth_mode not in AUTH_MODES:
            raise ValueError(f"Unsupported auth mode: {self.auth_mode}")
        self.per_page = per_page or settings.woo_per_page
        self.timeout = timeout or settings.woo_timeout_seconds
        self.max_retries = max_retries or settings.woo_max_retries
        self.retry_base_delay = (
            settings.woo_retry_base_delay
            if retry_base_delay is None
            else retry_base_delay
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": settings.woo_user_agent},
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Auth ──

    def _auth_params(self, extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
        params = dict(extra or {})
        if self.auth_mode == "qs" and self.consumer_key and self.consumer_secret:
            params["consumer_key"] = self.consumer_key
            params["consumer_secret"] = self.consumer_secret
        return params

    def _basic_auth(self) -> httpx.BasicAuth | None:
        if self.auth_mode == "basic" and self.consumer_key and self.consumer_secret:
            return httpx.BasicAuth(self.consumer_key, self.consumer_secret)
        return None

    # ── Core Request Method ──

    def _backoff(self, attempt: int) -> float:
        """Linear schedule: base, 2*base, 3*base..."""
        return self.retry_base_delay * attempt

    async def _request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] | None = None,
    ) -> Any:
        """Make a request with retry + rate-limit handling."""
        url = f"{self.base_url}/wp-json/{path}"
        client = await self._get_client()
        auth = self._basic_auth()
        last_error = "Max retries exhausted"
        last_status = 0

        for attempt in range(1, self.max_retries + 1):
            wait = self._backoff(attempt)
            try:
                kwargs: Dict[str, Any] = {"params": self._auth_params(params)}
                if auth is not None:
                    kwargs["auth"] = auth
                resp = await client.request(method, url, **kwargs)

                if resp.status_code == 429:
                    last_error = _error_message(resp)
                    last_status = 429
                    server_wait = _retry_after_seconds(resp)
                    if server_wait is not None:
                        wait = server_wait
                    logger.warning(
                        f"Rate limited (429). Retrying in {wait}s (attempt {attempt}/{self.max_retries})",
                        extra={"endpoint": path, "status_code": 429},
                    )
                else:
                    resp.raise_for_status()
                    return resp.json()

            except httpx.HTTPStatusError as e:
                last_error = _error_message(e.response)
                last_status = e.response.status_code
                logger.warning(
                    f"HTTP error {last_status} (attempt {attempt}/{self.max_retries})",
                    extra={"endpoint": path, "status_code": last_status},
                )

            except httpx.InvalidURL as e:
                # Not retryable: the store's base URL itself is malformed
                logger.error(f"Invalid store URL: {e}", extra={"endpoint": path})
                raise WooAPIError(f"Invalid store URL: {e}") from e

            except (httpx.RequestError, ValueError) as e:
                last_error = str(e) or type(e).__name__
                last_status = 0
                logger.warning(
                    f"Request error: {last_error} (attempt {attempt}/{self.max_retries})",
                    extra={"endpoint": path},
                )

            if attempt < self.max_retries:
                await asyncio.sleep(wait)

        raise WooAPIError(last_error, last_status)

    # ── Pagination ──

    async def _paginated_get(
        self,
        path: str,
        params: Dict[str, Any] | None = None,
    ) -> List[Dict[str, Any]]:
        """Fetch pages until one comes back shorter than ``per_page``."""
        all_data: List[Dict[str, Any]] = []
        params = dict(params or {})
        per_page = int(params.pop("per_page", self.per_page))
        page = 1

        while True:
            result = await self._request(
                "GET", path, {"per_page": per_page, "page": page, **params}
            )
            batch = result if isinstance(result, list) else []
            all_data.extend(batch)
            if len(batch) < per_page:
                break
            page += 1

        logger.info(f"Fetched {len(all_data)} records from {path}", extra={"endpoint": path})
        return all_data

    # ── Resources ──

    async def fetch_all(
        self, resource: str, params: Dict[str, Any] | None = None
    ) -> FetchResult:
        """Fetch a full remote collection, e.g. ``fetch_all("orders", {...})``."""
        path = RESOURCE_PATHS.get(resource)
        if path is None:
            return FetchResult(success=False, error=f"Unknown resource: {resource}")
        try:
            data = await self._paginated_get(path, params)
            return FetchResult(success=True, data=data)
        except WooAPIError as e:
            logger.error(f"Failed to fetch {resource}: {e}", extra={"endpoint": path})
            return FetchResult(success=False, error=str(e))

    async def fetch_refunds(self, order_id: str | int) -> FetchResult:
        path = f"wc/v3/orders/{order_id}/refunds"
        try:
            data = await self._request("GET", path)
            return FetchResult(success=True, data=data if isinstance(data, list) else [])
        except WooAPIError as e:
            return FetchResult(success=False, error=str(e))

    async def test_connection(self) -> FetchResult:
        """Call ``system_status`` to validate URL and credentials."""
        try:
            data = await self._request("GET", "wc/v3/system_status")
            return FetchResult(success=True, data=[data] if isinstance(data, dict) else [])
        except WooAPIError as e:
            return FetchResult(success=False, error=str(e))
