"""
============================================================================
Dynamic Frame Pricing v1.0.0
Shop Session - Capability Provider
============================================================================

Supplies the shop identifier and an authorized admin
capability. A provider that cannot establish a session returns None; the
caller treats that as an authorization failure (TPL-002), never as a
validation failure.

============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
import logging
import threading

from app.storefront.admin_client import AdminCapability, AdminGraphQLClient
from services.pricing_config import ServiceConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShopSession:
    """An authenticated shop plus its admin capability."""
    shop: str
    capability: AdminCapability


class CapabilityProvider(ABC):
    """Establishes a ShopSession or declines with None."""

    @abstractmethod
    def get_session(self, correlation_id: Optional[str] = None) -> Optional[ShopSession]:
        ...


class EnvCapabilityProvider(CapabilityProvider):
    """
    Single-shop provider backed by an admin access token from configuration.

    Declines when SHOPIFY_SHOP_DOMAIN or SHOPIFY_ADMIN_ACCESS_TOKEN is unset.
    One AdminGraphQLClient (and its requests.Session connection pool) is
    built on first use and shared by every session until close().
    """

    def __init__(self, config: ServiceConfig):
        self._config = config
        self._client: Optional[AdminGraphQLClient] = None
        self._lock = threading.Lock()

    def _shared_client(self) -> AdminGraphQLClient:
        with self._lock:
            if self._client is None:
                self._client = AdminGraphQLClient(
                    shop_domain=self._config.shop_domain,
                    access_token=self._config.admin_access_token,
                    api_version=self._config.api_version,
                )
            return self._client

    def get_session(self, correlation_id: Optional[str] = None) -> Optional[ShopSession]:
        if not self._config.has_admin_credentials:
            logger.warning(
                f"[SHOP-SESSION] No admin credentials configured | "
                f"correlation_id={correlation_id}"
            )
            return None

        client = self._shared_client()
        return ShopSession(shop=client.shop_domain, capability=client)

    def close(self) -> None:
        """Close the shared client's HTTP session."""
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None
