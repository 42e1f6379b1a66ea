"""
HTTP client for the Sucuri WAF API.
"""
import asyncio
from typing import Optional

import httpx
from pydantic import ValidationError

from .changes import WafRequest
from .models import ApiResponse
from .utils import setup_logging

logger = setup_logging("client")

DEFAULT_API_URL = "https://waf.sucuri.net/api?v2"


class WafApiError(Exception):
    """Exception raised when the API rejects a request."""

    def __init__(self, message: str, messages: Optional[list] = None):
        super().__init__(message)
        self.messages = messages or []


class WafUnavailableError(WafApiError):
    """Exception raised when the API is unavailable."""
    pass


class SucuriClient:
    """
    Async HTTP client for the Sucuri WAF API.

    Every call is a form-encoded POST carrying the API key (k), the site's
    API secret (s) and the action (a).

    Features:
    - Automatic retry on timeout, connection and 5xx errors
    - Exponential backoff between retries
    - API-level failures (status != 1) raised as WafApiError
    """

    DEFAULT_TIMEOUT = 30.0
    MAX_RETRIES = 2
    INITIAL_BACKOFF = 0.5  # seconds

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the API client.

        Args:
            api_key: Account API key
            api_secret: API secret of the site to change
            api_url: API endpoint
            timeout: Request timeout in seconds
            max_retries: Retries after the first attempt
            transport: Optional httpx transport (used by tests and the mock API)
        """
        self.api_key = api_key
        self.api_secret = api_secret
        self.api_url = api_url
        self.timeout = timeout
        self.max_retries = max_retries
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SucuriClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _backoff(self, attempt: int) -> None:
        await asyncio.sleep(self.INITIAL_BACKOFF * (2 ** attempt))

    def _parse(self, request: WafRequest, response: httpx.Response) -> ApiResponse:
        try:
            result = ApiResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            logger.error(f"Unexpected API response: action={request.action}, body={response.text[:200]!r}")
            raise WafApiError(f"Unexpected response from API for {request}")

        if not result.ok:
            detail = "; ".join(result.messages) or "no details"
            logger.error(f"API rejected request: action={request.action}, messages={result.messages}")
            raise WafApiError(f"API rejected request: {detail}", result.messages)

        return result

    async def submit(self, request: WafRequest) -> ApiResponse:
        """
        Send one request to the API.

        Implements retry logic with exponential backoff for:
        - Connection errors
        - Timeout errors
        - 5xx server errors

        Args:
            request: The request to send

        Returns:
            Parsed API response

        Raises:
            WafUnavailableError: If the API is unavailable after retries
            WafApiError: If the API rejected the request
        """
        client = await self._get_client()
        data = {"k": self.api_key, "s": self.api_secret}
        data.update(request.form_data())
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                logger.info(
                    f"Submitting: {request}, "
                    f"attempt={attempt + 1}/{self.max_retries + 1}"
                )

                response = await client.post(self.api_url, data=data)

                # Check for 5xx errors (retry these)
                if response.status_code >= 500:
                    logger.warning(f"API returned {response.status_code}: action={request.action}")
                    last_error = WafApiError(f"API returned {response.status_code}")

                    if attempt < self.max_retries:
                        await self._backoff(attempt)
                        continue
                    break

                # Check for 4xx errors (don't retry these)
                if response.status_code >= 400:
                    logger.error(
                        f"API refused request: action={request.action}, "
                        f"status={response.status_code}"
                    )
                    raise WafApiError(f"API refused request: HTTP {response.status_code}")

                result = self._parse(request, response)
                logger.info(f"Request succeeded: {request}")
                return result

            except httpx.TimeoutException as e:
                logger.warning(f"API timeout: action={request.action}, attempt={attempt + 1}")
                last_error = e

            except httpx.TransportError as e:
                logger.warning(f"API connection error: action={request.action}, attempt={attempt + 1}, error={e}")
                last_error = e

            if attempt < self.max_retries:
                await self._backoff(attempt)

        # All retries exhausted
        logger.error(
            f"API unavailable after all retries: action={request.action}, "
            f"last_error={last_error}"
        )
        raise WafUnavailableError(
            f"API unavailable after {self.max_retries + 1} attempts"
        )
