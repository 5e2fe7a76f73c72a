"""Tests for the commerce platform client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from storefront_catalog.domain.exceptions import UpstreamUnavailableError
from storefront_catalog.infrastructure.platform_client import (
    BackendPriceRecord,
    PlatformClient,
)


def render_list_item(product_id, sku, final_price, final_price_net):
    return {
        "id": product_id,
        "sku": sku,
        "sgn": f"{sku}-sig",
        "price_info": {
            "final_price": final_price,
            "regular_price": final_price,
            "special_price": None,
            "extension_attributes": {
                "tax_adjustments": {
                    "final_price": final_price_net,
                    "regular_price": final_price_net,
                    "special_price": None,
                }
            },
        },
    }


class TestBackendPriceRecord:
    """Tests for record parsing."""

    def test_from_api_response(self) -> None:
        """Gross prices come from price_info, net from tax_adjustments."""
        record = BackendPriceRecord.from_api_response(render_list_item(31, "S1", 13.2, 12.0))

        assert record.id == 31
        assert record.sgn == "S1-sig"
        assert record.final_price == 13.2
        assert record.final_price_net == 12.0
        assert record.special_price is None

    def test_missing_adjustments(self) -> None:
        """Records without tax adjustments have no net prices."""
        record = BackendPriceRecord.from_api_response(
            {"id": 1, "price_info": {"final_price": 5.0}}
        )

        assert record.final_price == 5.0
        assert record.final_price_net is None


class TestPlatformClient:
    """Tests for PlatformClient."""

    @pytest.fixture
    def client(self):
        """Create a test client."""
        return PlatformClient("http://localhost:8080/api/products/", currency_code="EUR")

    @pytest.mark.asyncio
    async def test_fetch_prices(self, client):
        """All SKUs are quoted in one request."""
        mock_response = MagicMock()
        mock_response.json.return_value = {
            "code": 200,
            "result": {
                "items": [
                    render_list_item(31, "S1", 13.2, 12.0),
                    render_list_item(32, "S2", 11.0, 10.0),
                ]
            },
        }

        with patch.object(
            client, "_get_client", new_callable=AsyncMock
        ) as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.get = AsyncMock(return_value=mock_response)
            mock_get_client.return_value = mock_http_client

            records = await client.fetch_prices(["S1", "S2"])

            assert [r.sku for r in records] == ["S1", "S2"]
            mock_http_client.get.assert_called_once_with(
                "http://localhost:8080/api/products/render-list",
                params={"skus": "S1,S2", "currencyCode": "EUR"},
            )

    @pytest.mark.asyncio
    async def test_fetch_prices_list_result(self, client):
        """A bare list result is accepted."""
        mock_response = MagicMock()
        mock_response.json.return_value = {"result": [render_list_item(31, "S1", 13.2, 12.0)]}

        with patch.object(
            client, "_get_client", new_callable=AsyncMock
        ) as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.get = AsyncMock(return_value=mock_response)
            mock_get_client.return_value = mock_http_client

            records = await client.fetch_prices(["S1"])

            assert records[0].id == 31

    @pytest.mark.asyncio
    async def test_fetch_no_skus(self, client):
        """No SKUs means no request."""
        with patch.object(
            client, "_get_client", new_callable=AsyncMock
        ) as mock_get_client:
            assert await client.fetch_prices([]) == []
            mock_get_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_timeout(self, client):
        """Timeouts become upstream errors."""
        with patch.object(
            client, "_get_client", new_callable=AsyncMock
        ) as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.get = AsyncMock(
                side_effect=httpx.TimeoutException("Connection timeout")
            )
            mock_get_client.return_value = mock_http_client

            with pytest.raises(UpstreamUnavailableError) as exc_info:
                await client.fetch_prices(["S1"])

            assert exc_info.value.service == "platform"

    @pytest.mark.asyncio
    async def test_fetch_http_error(self, client):
        """Error statuses become upstream errors with the status code."""
        mock_response = MagicMock()
        mock_response.status_code = 500
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Internal Server Error", request=MagicMock(), response=mock_response
        )

        with patch.object(
            client, "_get_client", new_callable=AsyncMock
        ) as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.get = AsyncMock(return_value=mock_response)
            mock_get_client.return_value = mock_http_client

            with pytest.raises(UpstreamUnavailableError) as exc_info:
                await client.fetch_prices(["S1"])

            assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_fetch_non_json_body(self, client):
        """A 200 with a non-JSON body becomes an upstream error."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, text="<html>proxy error</html>")
        )
        client._client = httpx.AsyncClient(transport=transport)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await client.fetch_prices(["S1"])

        assert exc_info.value.service == "platform"
        await client.close()

    @pytest.mark.asyncio
    async def test_fetch_item_without_id(self, client):
        """A price item without an id becomes an upstream error."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(
                200, json={"result": {"items": [{"sku": "S1", "price_info": {}}]}}
            )
        )
        client._client = httpx.AsyncClient(transport=transport)

        with pytest.raises(UpstreamUnavailableError):
            await client.fetch_prices(["S1"])

        await client.close()
