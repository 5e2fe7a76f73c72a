"""Commerce platform HTTP client.

Downloads authoritative, tax-adjusted prices for a batch of SKUs.
"""

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from storefront_catalog.domain.exceptions import UpstreamUnavailableError
from storefront_catalog.infrastructure.config import settings

logger = structlog.get_logger()


@dataclass
class BackendPriceRecord:
    """Price quote of one product from the platform.

    Tax-inclusive amounts come from ``price_info``; the net amounts from
    ``price_info.extension_attributes.tax_adjustments``.
    """

    id: int | str
    sku: str | None
    sgn: str | None
    final_price: float | None
    regular_price: float | None
    special_price: float | None
    final_price_net: float | None
    regular_price_net: float | None
    special_price_net: float | None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "BackendPriceRecord":
        """Create from platform API response.

        Args:
            data: One item of ``result.items``.

        Returns:
            BackendPriceRecord instance.
        """
        price_info = data.get("price_info") or {}
        adjustments = (price_info.get("extension_attributes") or {}).get(
            "tax_adjustments"
        ) or {}
        return cls(
            id=data["id"],
            sku=data.get("sku"),
            sgn=data.get("sgn"),
            final_price=price_info.get("final_price"),
            regular_price=price_info.get("regular_price"),
            special_price=price_info.get("special_price"),
            final_price_net=adjustments.get("final_price"),
            regular_price_net=adjustments.get("regular_price"),
            special_price_net=adjustments.get("special_price"),
        )


class PlatformClient:
    """HTTP client for the commerce platform price endpoint.

    Example usage:
        client = PlatformClient("http://localhost:8080/api/products", "USD")
        records = await client.fetch_prices(["WS12", "WS12-XS-Red"])
    """

    def __init__(
        self,
        products_endpoint: str,
        currency_code: str = "USD",
        timeout: float = 10.0,
    ) -> None:
        """Initialize platform client.

        Args:
            products_endpoint: Base URL of the products API.
            currency_code: Currency to quote prices in.
            timeout: Request timeout in seconds.
        """
        self.products_endpoint = products_endpoint.rstrip("/")
        self.currency_code = currency_code
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_prices(self, skus: list[str]) -> list[BackendPriceRecord]:
        """Fetch current prices for a batch of SKUs in one request.

        Args:
            skus: SKUs to quote.

        Returns:
            Price records; SKUs unknown to the platform are simply absent.

        Raises:
            UpstreamUnavailableError: On transport or HTTP errors.
        """
        if not skus:
            return []

        url = f"{self.products_endpoint}/render-list"
        params = {"skus": ",".join(skus), "currencyCode": self.currency_code}

        try:
            client = await self._get_client()
            response = await client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise UpstreamUnavailableError("platform", f"Request timed out: {url}") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailableError(
                "platform",
                f"Price sync failed: {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise UpstreamUnavailableError("platform", f"Request error: {e}") from e
        except ValueError as e:
            logger.error("Malformed platform response", url=url, error=str(e))
            raise UpstreamUnavailableError("platform", f"Invalid JSON response: {url}") from e

        try:
            result = data.get("result") or {}
            items = result.get("items", []) if isinstance(result, dict) else result
            records = [BackendPriceRecord.from_api_response(item) for item in items]
        except (AttributeError, KeyError, TypeError) as e:
            logger.error("Unexpected platform response shape", url=url, error=str(e))
            raise UpstreamUnavailableError("platform", f"Unexpected response: {url}") from e

        logger.debug("Fetched platform prices", requested=len(skus), received=len(records))
        return records


# Global client instance
_platform_client: PlatformClient | None = None


def get_platform_client() -> PlatformClient:
    """Get the platform client singleton.

    Returns:
        PlatformClient configured from settings.
    """
    global _platform_client
    if _platform_client is None:
        _platform_client = PlatformClient(
            products_endpoint=settings.platform_products_endpoint,
            currency_code=settings.currency_code,
            timeout=settings.request_timeout,
        )
    return _platform_client
