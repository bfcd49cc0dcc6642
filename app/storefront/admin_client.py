# ============================================================================
# Dynamic Frame Pricing v1.0.0
# Admin API Capability - GraphQL Transport
# ============================================================================
#
# Reliability Level: L5 Critical
# Purpose: Single typed operation for executing admin GraphQL requests
#
# MANDATE:
#   - The product gateway depends only on AdminCapability, never on a
#     concrete SDK
#   - HTTP 429 / THROTTLED responses were not executed: retried with backoff
#   - Timeouts, connection errors, any other requests failure and 5xx are
#     NOT retried (mutations are not idempotent); all surface as
#     RemoteTransportError
#   - Access tokens never appear in logs
#
# Error Codes:
#   - TPL-003: GraphQL reported errors for the request
#   - TPL-005: Transport failure
#
# ============================================================================

import random
import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any

import requests
from requests.exceptions import (
    ConnectionError as RequestsConnectionError,
    RequestException,
    Timeout,
)

from services.temp_product_models import RemoteMutationError, RemoteTransportError

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class GraphQLRequest:
    """A GraphQL document plus its variables."""
    query: str
    variables: Dict[str, Any] = field(default_factory=dict)
    operation_name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"query": self.query, "variables": self.variables}
        if self.operation_name:
            payload["operationName"] = self.operation_name
        return payload


@dataclass(frozen=True)
class GraphQLResponse:
    """The data section of a successful GraphQL response."""
    data: Dict[str, Any] = field(default_factory=dict)
    extensions: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Capability Interface
# ============================================================================

class AdminCapability(ABC):
    """
    An authorized handle on the remote catalog API for one shop.

    Implementations return the response data or raise:
        RemoteMutationError: GraphQL-level errors for the request
        RemoteTransportError: the call itself failed
    """

    @abstractmethod
    def execute(self, request: GraphQLRequest) -> GraphQLResponse:
        ...


# ============================================================================
# Exponential Backoff
# ============================================================================

class ExponentialBackoff:
    """
    Backoff delays for throttled requests.

    delay = min(base_delay × multiplier^attempt, max_delay) + jitter
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        multiplier: float = 2.0,
        max_delay: float = 30.0,
        jitter: float = 0.25
    ):
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.max_delay = max_delay
        self.jitter = jitter
        self._attempt = 0

    def get_delay(self) -> float:
        """Next backoff delay; increments the attempt counter."""
        delay = self.base_delay * (self.multiplier ** self._attempt)
        delay = min(delay, self.max_delay)

        if self.jitter > 0:
            delay += delay * self.jitter * random.random()

        self._attempt += 1
        return delay

    def reset(self) -> None:
        """Reset attempt counter after a successful request."""
        self._attempt = 0


# ============================================================================
# Admin GraphQL Client
# ============================================================================

def _is_throttled(errors: List[Dict[str, Any]]) -> bool:
    for error in errors:
        extensions = error.get("extensions") or {}
        if extensions.get("code") == "THROTTLED":
            return True
    return False


class AdminGraphQLClient(AdminCapability):
    """
    Admin GraphQL API client over requests.

    Example Usage:
        with AdminGraphQLClient("example.myshopify.com", token) as client:
            response = client.execute(GraphQLRequest("{ shop { name } }"))
    """

    DEFAULT_TIMEOUT = 30.0
    MAX_RETRIES = 3

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = "2024-10",
        timeout: float = DEFAULT_TIMEOUT,
        correlation_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
        backoff: Optional[ExponentialBackoff] = None,
        sleep=time.sleep,
    ):
        if not shop_domain or not access_token:
            raise ValueError("shop_domain and access_token are required")

        self.shop_domain = shop_domain.replace("https://", "").replace("http://", "").strip("/")
        self.api_version = api_version
        self.timeout = timeout
        self.correlation_id = correlation_id
        self.backoff = backoff if backoff is not None else ExponentialBackoff()
        self._access_token = access_token
        self._sleep = sleep
        self._session = session if session is not None else requests.Session()

        logger.info(
            f"[ADMIN-API] Client initialized | "
            f"shop={self.shop_domain} | api_version={api_version} | "
            f"correlation_id={correlation_id}"
        )

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop_domain}/admin/api/{self.api_version}/graphql.json"

    def execute(self, request: GraphQLRequest) -> GraphQLResponse:
        """
        POST a GraphQL request.

        Raises:
            RemoteMutationError: Top-level GraphQL errors (TPL-003)
            RemoteTransportError: Network/HTTP failure or retries exhausted (TPL-005)
        """
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Shopify-Access-Token": self._access_token,
        }

        for attempt in range(self.MAX_RETRIES):
            try:
                response = self._session.post(
                    self.endpoint,
                    json=request.to_payload(),
                    headers=headers,
                    timeout=self.timeout,
                )
            except Timeout as e:
                logger.error(
                    f"[{RemoteTransportError.error_code}] Timeout | "
                    f"operation={request.operation_name} | "
                    f"correlation_id={self.correlation_id}"
                )
                raise RemoteTransportError(f"Admin API timeout: {e}") from e
            except RequestsConnectionError as e:
                logger.error(
                    f"[{RemoteTransportError.error_code}] Connection error | "
                    f"operation={request.operation_name} | error={e} | "
                    f"correlation_id={self.correlation_id}"
                )
                raise RemoteTransportError(f"Admin API connection failed: {e}") from e
            except RequestException as e:
                logger.error(
                    f"[{RemoteTransportError.error_code}] Request failed | "
                    f"operation={request.operation_name} | "
                    f"error={type(e).__name__}: {e} | "
                    f"correlation_id={self.correlation_id}"
                )
                raise RemoteTransportError(f"Admin API request failed: {e}") from e

            if response.status_code == 429:
                self._wait_throttled(attempt, "HTTP 429")
                continue

            if response.status_code >= 400:
                logger.error(
                    f"[{RemoteTransportError.error_code}] HTTP error | "
                    f"status={response.status_code} | "
                    f"operation={request.operation_name} | "
                    f"correlation_id={self.correlation_id}"
                )
                raise RemoteTransportError(
                    f"Admin API returned HTTP {response.status_code}"
                )

            try:
                body = response.json()
            except ValueError as e:
                raise RemoteTransportError("Admin API returned invalid JSON") from e

            errors = body.get("errors") or []
            if errors and _is_throttled(errors):
                self._wait_throttled(attempt, "THROTTLED")
                continue

            if errors:
                messages = [str(err.get("message", err)) for err in errors]
                logger.error(
                    f"[{RemoteMutationError.error_code}] GraphQL errors | "
                    f"operation={request.operation_name} | errors={messages} | "
                    f"correlation_id={self.correlation_id}"
                )
                raise RemoteMutationError(messages)

            self.backoff.reset()
            return GraphQLResponse(
                data=body.get("data") or {},
                extensions=body.get("extensions") or {},
            )

        logger.error(
            f"[{RemoteTransportError.error_code}] Max retries exhausted | "
            f"operation={request.operation_name} | "
            f"correlation_id={self.correlation_id}"
        )
        raise RemoteTransportError(
            f"Admin API throttled after {self.MAX_RETRIES} attempts"
        )

    def _wait_throttled(self, attempt: int, reason: str) -> None:
        if attempt >= self.MAX_RETRIES - 1:
            logger.warning(
                f"[ADMIN-API] {reason} - throttled | "
                f"attempt={attempt + 1}/{self.MAX_RETRIES} | "
                f"correlation_id={self.correlation_id}"
            )
            return

        delay = self.backoff.get_delay()
        logger.warning(
            f"[ADMIN-API] {reason} - throttled | "
            f"attempt={attempt + 1}/{self.MAX_RETRIES} | "
            f"backoff={delay:.1f}s | correlation_id={self.correlation_id}"
        )
        self._sleep(delay)

    def close(self) -> None:
        """Close HTTP session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
