"""MediaWiki Action API transport.

Sends one form-encoded POST per call and returns the decoded JSON body.

Public Interface:
    - MediaWikiTransport: HTTP transport over a requests.Session

Example:
    >>> transport = MediaWikiTransport("https://en.wikipedia.org/w/api.php")
    >>> body = transport.invoke({"action": "query", "meta": "siteinfo"})
    >>> print(body["query"]["general"]["sitename"])
"""

import logging
import time
from collections.abc import Mapping
from typing import Any

import requests

from ..config import DEFAULT_USER_AGENT, WikiClientSettings
from ..errors import TransportError, UnexpectedDataError, error_from_response
from ..query.params import QueryParameters

logger = logging.getLogger(__name__)


class MediaWikiTransport:
    """HTTP transport for one api.php endpoint.

    Implements:
        - Rate limiting (minimum delay between requests)
        - Retry with exponential backoff on HTTP 429, 5xx and timeouts
        - Response validation (JSON only, server warnings logged)
        - Conversion of ``error`` nodes into OperationFailedError

    Args:
        api_url: URL of api.php
        user_agent: User-Agent header value
        timeout: Request timeout in seconds (default: 30)
        max_retries: Maximum number of retry attempts (default: 3)
        rate_limit_delay: Delay between requests in seconds (default: 0.1)
        backoff_factor: Base of the retry delay in seconds (default: 1.0)
        session: Existing session to use, e.g. one that already holds cookies
    """

    def __init__(
        self,
        api_url: str,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        max_retries: int = 3,
        rate_limit_delay: float = 0.1,
        backoff_factor: float = 1.0,
        session: requests.Session | None = None,
    ):
        self.api_url = api_url
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limit_delay = rate_limit_delay
        self.backoff_factor = backoff_factor
        self.last_request_time = 0.0

    @classmethod
    def from_settings(cls, settings: WikiClientSettings) -> "MediaWikiTransport":
        return cls(
            settings.api_url,
            user_agent=settings.user_agent,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            rate_limit_delay=settings.rate_limit_delay,
        )

    def _enforce_rate_limit(self):
        """Ensure minimum delay between requests."""
        current_time = time.time()
        time_since_last = current_time - self.last_request_time

        if time_since_last < self.rate_limit_delay:
            time.sleep(self.rate_limit_delay - time_since_last)

        self.last_request_time = time.time()

    def _backoff(self, retry_count: int) -> None:
        time.sleep((2**retry_count) * self.backoff_factor)

    def _post(self, data: dict[str, str], retry_count: int = 0) -> requests.Response:
        """POST with retry logic.

        Raises:
            TransportError: On network failures, or when retries are exhausted
        """
        self._enforce_rate_limit()

        try:
            response = self.session.post(self.api_url, data=data, timeout=self.timeout)

            if response.status_code == 429 or response.status_code >= 500:
                if retry_count < self.max_retries:
                    logger.warning(
                        f"HTTP {response.status_code} from {self.api_url}, "
                        f"retry {retry_count + 1}/{self.max_retries}"
                    )
                    self._backoff(retry_count)
                    return self._post(data, retry_count + 1)
                raise TransportError(
                    f"HTTP {response.status_code} from {self.api_url} "
                    f"after {self.max_retries} retries"
                )

            response.raise_for_status()
            return response

        except requests.Timeout as e:
            if retry_count < self.max_retries:
                logger.warning(f"Timeout from {self.api_url}, retry {retry_count + 1}/{self.max_retries}")
                self._backoff(retry_count)
                return self._post(data, retry_count + 1)
            raise TransportError(f"Request timeout after {self.max_retries} retries") from e

        except requests.RequestException as e:
            raise TransportError(f"Request failed: {str(e)}") from e

    @staticmethod
    def _decode(response: requests.Response) -> dict:
        text = response.text
        if not text or not text.strip():
            raise UnexpectedDataError("Server returned an empty response")

        content_type = response.headers.get("Content-Type", "")
        if "html" in content_type or text.lstrip().startswith("<"):
            raise UnexpectedDataError(
                f"Server returned HTML instead of JSON (HTTP {response.status_code}); "
                "check the API endpoint URL"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise UnexpectedDataError(f"Server returned malformed JSON: {text[:100]!r}") from e

        if not isinstance(body, dict):
            raise UnexpectedDataError(f"Expected a JSON object, got {type(body).__name__}")
        return body

    @staticmethod
    def _log_warnings(body: Mapping[str, Any]) -> None:
        for module, node in (body.get("warnings") or {}).items():
            if isinstance(node, Mapping):
                message = node.get("*", node.get("warnings", node))
            else:
                message = node
            logger.warning(f"API warning from {module}: {message}")

    def invoke(self, parameters: Mapping[str, Any]) -> dict:
        """Send one API request and return the decoded response body.

        Args:
            parameters: Request parameters (raw values, encoded here)

        Returns:
            Decoded JSON body

        Raises:
            OperationFailedError: If the body carries an ``error`` node
            UnexpectedDataError: If the body is not a JSON object
            TransportError: On network failures
        """
        if not isinstance(parameters, QueryParameters):
            parameters = QueryParameters(parameters)
        data = parameters.to_wire()
        data["format"] = "json"

        logger.debug(f"POST {self.api_url} action={data.get('action')}")
        body = self._decode(self._post(data))
        self._log_warnings(body)

        if "error" in body:
            raise error_from_response(body["error"])
        return body

    def close(self) -> None:
        self.session.close()
