"""Airtable REST client with pagination, retries, and rate limiting."""

import time
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from src.remote.constants import (
    AIRTABLE_API_BASE_URL,
    AIRTABLE_DEFAULT_MAX_QPS,
    AIRTABLE_MAX_PAGE_SIZE,
    DEFAULT_RATE_LIMIT_BACKOFF_SECONDS,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_FORBIDDEN,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
    HTTP_STATUS_UNAUTHORIZED,
    MAX_RETRY_AFTER_SECONDS,
)
from src.remote.errors import ConfigurationError, PayloadError, TransientFetchError
from src.remote.metrics import RequestMetrics
from src.remote.models import (
    FetchError,
    FetchErrorClass,
    RawRecord,
    RetryPolicy,
    TableQuery,
)
from src.remote.rate_limiter import RateLimiterProtocol, get_base_rate_limiter
from src.remote.redact import redact_headers


logger = structlog.get_logger()


class AirtableClient:
    """Paginated reader for Airtable tables.

    Implements the ``RecordSource`` protocol. Each call to ``iter_pages``
    opens one HTTP client for the lifetime of the iteration and follows
    the ``offset`` token until the table is exhausted or the caller stops
    iterating.
    """

    def __init__(
        self,
        api_key: str,
        timeout_seconds: float = 30.0,
        retry_policy: RetryPolicy | None = None,
        max_qps: float = AIRTABLE_DEFAULT_MAX_QPS,
        base_url: str = AIRTABLE_API_BASE_URL,
        transport: httpx.BaseTransport | None = None,
        rate_limiter: RateLimiterProtocol | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Personal access token for the API.
            timeout_seconds: Per-request timeout.
            retry_policy: Retry behavior for transient failures.
            max_qps: Request rate ceiling per base.
            base_url: API root URL.
            transport: Optional httpx transport (mock transport in tests).
            rate_limiter: Limiter to use instead of the shared per-base one.
            sleep: Function used to wait between retries.

        Raises:
            ConfigurationError: If no API key is given.
        """
        if not api_key:
            msg = "Airtable API key is not configured"
            raise ConfigurationError(msg, missing=["AIRTABLE_API_KEY"])

        self._api_key = api_key
        self._timeout = timeout_seconds
        self._retry_policy = retry_policy or RetryPolicy()
        self._max_qps = max_qps
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._rate_limiter = rate_limiter
        self._sleep = sleep
        self._metrics = RequestMetrics.get_instance()
        self._log = logger.bind(component="remote")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }

    def _limiter_for(self, base_id: str) -> RateLimiterProtocol:
        if self._rate_limiter is not None:
            return self._rate_limiter
        return get_base_rate_limiter(base_id, self._max_qps)

    def iter_pages(
        self,
        base_id: str,
        query: TableQuery,
        page_size: int = AIRTABLE_MAX_PAGE_SIZE,
    ) -> Iterator[list[RawRecord]]:
        """Yield pages of records from one table.

        Args:
            base_id: Identifier of the base holding the table.
            query: Table, view and sort parameters.
            page_size: Records per page, capped at the API maximum.

        Yields:
            One list of records per page.

        Raises:
            ConfigurationError: If the base id is empty or credentials
                are rejected.
            TransientFetchError: If a page request fails after retries.
            PayloadError: If a response body is not a valid page.
        """
        if not base_id:
            msg = f"No base id configured for table '{query.table}'"
            raise ConfigurationError(msg)

        page_size = max(1, min(page_size, AIRTABLE_MAX_PAGE_SIZE))
        limiter = self._limiter_for(base_id)
        log = self._log.bind(
            base_id=base_id,
            table=query.table,
            view=query.view,
            sort_field=query.sort_field,
        )
        headers = self._headers()
        log.debug("page_iteration_start", headers=redact_headers(headers))

        offset: str | None = None
        page_number = 0

        with httpx.Client(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            while True:
                params: dict[str, str | int] = {"pageSize": page_size}
                params.update(query.to_params())
                if offset:
                    params["offset"] = offset

                limiter.acquire()
                payload = self._get_with_retry(
                    client, f"/{base_id}/{query.table}", params, log
                )
                records, offset = self._parse_page(payload, query.table)
                page_number += 1
                self._metrics.record_page(len(records))
                log.debug(
                    "page_fetched",
                    page=page_number,
                    records=len(records),
                    has_more=offset is not None,
                )

                yield records

                if not offset:
                    return

    def _get_with_retry(
        self,
        client: httpx.Client,
        path: str,
        params: dict[str, str | int],
        log: structlog.stdlib.BoundLogger,
    ) -> Any:
        """Execute one page request with retry logic.

        Args:
            client: Open HTTP client.
            path: Request path relative to the API root.
            params: Query-string parameters.
            log: Bound logger.

        Returns:
            Decoded JSON body.

        Raises:
            ConfigurationError: On 401/403 responses.
            TransientFetchError: When retries are exhausted or the error
                is not retryable.
            PayloadError: If the body is not JSON.
        """
        policy = self._retry_policy
        attempt = 0

        while True:
            result = self._execute_single(client, path, params)

            if isinstance(result, httpx.Response):
                try:
                    return result.json()
                except ValueError as e:
                    msg = f"Response body is not valid JSON: {e}"
                    raise PayloadError(msg, context=result.text[:200]) from e

            error = result

            if error.error_class == FetchErrorClass.AUTH:
                self._metrics.record_failure(error.error_class)
                raise ConfigurationError(error.message)

            if not policy.should_retry(error, attempt):
                self._metrics.record_failure(error.error_class)
                log.warning(
                    "page_request_failed",
                    error_class=error.error_class.value,
                    status_code=error.status_code,
                    attempts=attempt + 1,
                )
                raise TransientFetchError(
                    error.message,
                    fetch_error_class=error.error_class,
                    status_code=error.status_code,
                )

            if error.error_class == FetchErrorClass.RATE_LIMITED:
                delay_seconds = float(
                    min(
                        error.retry_after or DEFAULT_RATE_LIMIT_BACKOFF_SECONDS,
                        MAX_RETRY_AFTER_SECONDS,
                    )
                )
                log.info("rate_limited", retry_after=delay_seconds, attempt=attempt)
            else:
                delay_seconds = policy.get_delay_ms(attempt) / 1000.0

            self._metrics.record_retry()
            log.debug(
                "retry_attempt",
                attempt=attempt + 1,
                delay_seconds=delay_seconds,
                max_retries=policy.max_retries,
            )
            self._sleep(delay_seconds)
            attempt += 1

    def _execute_single(
        self,
        client: httpx.Client,
        path: str,
        params: dict[str, str | int],
    ) -> httpx.Response | FetchError:
        """Execute a single HTTP request.

        Args:
            client: Open HTTP client.
            path: Request path.
            params: Query-string parameters.

        Returns:
            The response on success, otherwise the classified error.
        """
        try:
            response = client.get(path, params=params)
        except httpx.TimeoutException as e:
            return FetchError(
                error_class=FetchErrorClass.NETWORK_TIMEOUT,
                message=f"Request timed out: {e}",
            )
        except httpx.ConnectError as e:
            return FetchError(
                error_class=FetchErrorClass.CONNECTION_ERROR,
                message=f"Connection failed: {e}",
            )
        except httpx.HTTPError as e:
            return FetchError(
                error_class=FetchErrorClass.UNKNOWN,
                message=f"Unexpected transport error: {e}",
            )

        self._metrics.record_response(response.status_code)
        error = self._classify_http_error(response.status_code, response.headers)
        return error or response

    def _classify_http_error(
        self,
        status_code: int,
        headers: httpx.Headers,
    ) -> FetchError | None:
        """Classify HTTP status code as error.

        Args:
            status_code: HTTP status code.
            headers: Response headers.

        Returns:
            FetchError if status indicates error, None otherwise.
        """
        if HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX:
            return None

        if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
            return FetchError(
                error_class=FetchErrorClass.RATE_LIMITED,
                message="Rate limited (429 Too Many Requests)",
                status_code=status_code,
                retry_after=self._parse_retry_after(headers.get("retry-after")),
            )

        if status_code in (HTTP_STATUS_UNAUTHORIZED, HTTP_STATUS_FORBIDDEN):
            return FetchError(
                error_class=FetchErrorClass.AUTH,
                message=f"Credentials rejected ({status_code})",
                status_code=status_code,
            )

        if HTTP_STATUS_BAD_REQUEST <= status_code < HTTP_STATUS_SERVER_ERROR_MIN:
            return FetchError(
                error_class=FetchErrorClass.HTTP_4XX,
                message=f"Client error ({status_code})",
                status_code=status_code,
            )

        if HTTP_STATUS_SERVER_ERROR_MIN <= status_code < HTTP_STATUS_SERVER_ERROR_MAX:
            return FetchError(
                error_class=FetchErrorClass.HTTP_5XX,
                message=f"Server error ({status_code})",
                status_code=status_code,
            )

        return FetchError(
            error_class=FetchErrorClass.UNKNOWN,
            message=f"Unexpected status ({status_code})",
            status_code=status_code,
        )

    def _parse_retry_after(self, value: str | None) -> int | None:
        """Parse Retry-After header value.

        Args:
            value: Header value (seconds or HTTP date).

        Returns:
            Seconds to wait, or None if not parseable.
        """
        if not value:
            return None

        try:
            return int(value)
        except ValueError:
            pass

        try:
            dt = parsedate_to_datetime(value)
            delta = dt - datetime.now(UTC)
            return max(0, int(delta.total_seconds()))
        except (ValueError, TypeError):
            pass

        return None

    def _parse_page(
        self,
        payload: Any,
        table: str,
    ) -> tuple[list[RawRecord], str | None]:
        """Extract records and the next offset from a page body.

        Args:
            payload: Decoded JSON body.
            table: Table name, for error messages.

        Returns:
            Tuple of (records, next offset or None).

        Raises:
            PayloadError: If the body is not a page object.
        """
        if not isinstance(payload, dict) or not isinstance(
            payload.get("records"), list
        ):
            msg = f"Page from table '{table}' has no 'records' list"
            raise PayloadError(msg, context=str(payload)[:200])

        try:
            records = [RawRecord.model_validate(item) for item in payload["records"]]
        except ValidationError as e:
            msg = f"Malformed record in table '{table}': {e.error_count()} errors"
            raise PayloadError(msg) from e

        offset = payload.get("offset")
        return records, offset if isinstance(offset, str) and offset else None
