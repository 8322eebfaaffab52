"""HTTP client for the remote enrichment service.

One POST per record; every failure is reported as EnrichmentItemError.
"""

import asyncio
from typing import Optional

import httpx

from batchpipe.config import EnrichmentClientConfig
from batchpipe.core.errors import EnrichmentItemError
from batchpipe.core.execution.error_classifier import ErrorClassifier
from batchpipe.core.logging import logger
from batchpipe.core.retry_config import ErrorCategory
from batchpipe.models import EnrichedUserRecord, UserRecord

ENRICH_PATH = "/enrich"

# Categories retried inside the client when max_attempts > 1
_CLIENT_RETRY_ON = (ErrorCategory.TRANSIENT, ErrorCategory.RATE_LIMIT)


class EnrichmentClient:
    """Calls the enrichment endpoint for one record at a time.

    Configuration is explicit: base URL, per-call timeout and attempts per
    record all come from the EnrichmentClientConfig passed in.
    """

    def __init__(
        self,
        config: Optional[EnrichmentClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            config: Endpoint configuration (defaults read from environment)
            transport: Optional httpx transport (tests use MockTransport/ASGITransport)
        """
        self.config = config or EnrichmentClientConfig.from_env()
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "EnrichmentClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def enrich(self, record: UserRecord) -> EnrichedUserRecord:
        """Enrich a single record.

        Args:
            record: Record to send

        Returns:
            The record as returned by the service (region untouched)

        Raises:
            EnrichmentItemError: On timeout, non-success status, transport
                error, or an unusable response body
        """
        attempts = self.config.max_attempts

        for attempt in range(1, attempts + 1):
            try:
                return await self._attempt(record)
            except EnrichmentItemError as e:
                category = ErrorClassifier.categorize(e)
                if attempt >= attempts or category not in _CLIENT_RETRY_ON:
                    raise
                logger.debug(
                    "enrichment_item_retry",
                    record_id=record.id,
                    attempt=attempt,
                    category=category.value,
                    error=e.reason,
                )

        raise AssertionError("max_attempts must be >= 1")

    async def _attempt(self, record: UserRecord) -> EnrichedUserRecord:
        try:
            # httpx timeouts apply per phase; wait_for bounds the whole call
            response = await asyncio.wait_for(
                self.http.post(ENRICH_PATH, json=record.to_wire()),
                timeout=self.config.timeout_seconds,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            message = str(e) or f"timeout of {self.config.timeout_ms}ms exceeded"
            raise EnrichmentItemError(record.id, message) from e
        except httpx.HTTPError as e:
            raise EnrichmentItemError(record.id, str(e) or type(e).__name__) from e

        if not response.is_success:
            raise EnrichmentItemError(
                record.id, _error_message(response), status_code=response.status_code
            )

        try:
            return EnrichedUserRecord.model_validate(response.json())
        except ValueError as e:
            # Malformed body is not retried
            raise EnrichmentItemError(
                record.id, f"invalid response body: {e}", status_code=response.status_code
            ) from e


def _error_message(response: httpx.Response) -> str:
    """Structured `error` field when present, else the status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Request failed with status code {response.status_code}"
