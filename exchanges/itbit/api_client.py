"""
itBit REST API Client

Thin async binding for the itBit REST API. Numeric values come back as
strings; the adapter converts them.

Errors are returned as {"code": <int>, "description": "..."} and are raised
as VenueError.

Rate Limits:
    10 requests per second for both credential classes.

Endpoints Used:
    GET    /markets/{pair}/ticker                 Ticker
    GET    /markets/{pair}/order_book             Full depth
    GET    /wallets?userId=                       Wallets and balances (auth)
    POST   /wallets/{walletId}/orders             Place order (auth)
    DELETE /wallets/{walletId}/orders/{orderId}   Cancel order (auth)
"""

from typing import Any, Dict, List, Optional

from core.errors import VenueError
from core.logging import get_logger
from core.request import Requester


class ItBitAPIClient:
    """
    Async HTTP binding for itBit.

    Attributes:
        BASE_URL: Default REST base URL
        requester: Rate-limited dispatcher shared with the adapter
        api_key: API key sent on authenticated calls
        client_id: itBit user id, scopes wallet enumeration
    """

    BASE_URL = "https://api.itbit.com/v1"
    NAME = "itbit"

    def __init__(self, requester: Requester, base_url: str = "", api_key: str = "", client_id: str = ""):
        self.requester = requester
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.api_key = api_key
        self.client_id = client_id
        self.logger = get_logger(__name__)

    # ============================================
    # Request Handler
    # ============================================

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        auth: bool = False
    ) -> Any:
        """
        Send a request and surface venue error payloads.

        Raises:
            VenueError: If the body carries an error code
            TransportError: Propagated from the Requester
        """
        headers = {"Content-Type": "application/json"}
        if auth and self.api_key:
            headers["Authorization"] = self.api_key

        data = await self.requester.send(
            method,
            f"{self.base_url}{path}",
            params=params,
            json=body,
            headers=headers,
            auth=auth,
        )

        if isinstance(data, dict) and data.get("code") and "description" in data:
            raise VenueError(self.NAME, f"{data['code']}: {data['description']}")

        return data

    # ============================================
    # Public Market Data
    # ============================================

    async def get_ticker(self, instrument: str) -> Dict[str, Any]:
        """
        Fetch the ticker for an instrument.

        Response Format:
            {
              "pair": "XBTUSD", "bid": "622", "ask": "641.29",
              "lastPrice": "618.00", "high24h": "650.00", "low24h": "600.00",
              "volume24h": "12.5", "serverTimeUTC": "2014-06-24T20:42:35.6160000Z"
            }
        """
        return await self._request("GET", f"/markets/{instrument}/ticker") or {}

    async def get_orderbook(self, instrument: str) -> Dict[str, Any]:
        """
        Fetch full depth for an instrument.

        Response Format:
            {"bids": [["219.82", "2.19"], ...], "asks": [["220.84", "0.2"], ...]}
        """
        return await self._request("GET", f"/markets/{instrument}/order_book") or {}

    # ============================================
    # Account & Trading (authenticated)
    # ============================================

    async def get_wallets(self, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Enumerate wallets and their balances.

        Response Format:
            [{"id": "b440efce-...", "userId": "...", "name": "Wallet",
              "balances": [{"currency": "XBT", "availableBalance": "1.5", "totalBalance": "2.0"}]}]
        """
        query = {"userId": self.client_id}
        query.update(params or {})
        wallets = await self._request("GET", "/wallets", params=query, auth=True)
        return wallets or []

    async def place_order(
        self,
        wallet_id: str,
        side: str,
        order_type: str,
        currency: str,
        amount: float,
        price: Optional[float],
        instrument: str,
        client_ref: str = ""
    ) -> Dict[str, Any]:
        """
        Place an order funded from a wallet.

        Returns:
            Order payload including the venue "id"

        Raises:
            VenueError: If the venue rejected the order
        """
        body = {
            "side": side,
            "type": order_type,
            "currency": currency,
            "amount": str(amount),
            "instrument": instrument,
        }
        if price is not None:
            body["price"] = str(price)
        if client_ref:
            body["clientOrderIdentifier"] = client_ref

        self.logger.info(f"Placing itBit order: {side} {order_type} {amount} {instrument} (wallet {wallet_id})")
        return await self._request("POST", f"/wallets/{wallet_id}/orders", body=body, auth=True) or {}

    async def cancel_existing_order(self, wallet_id: str, order_id: str) -> None:
        self.logger.info(f"Cancelling itBit order {order_id} (wallet {wallet_id})")
        await self._request("DELETE", f"/wallets/{wallet_id}/orders/{order_id}", auth=True)
