"""
HuobiHadax REST API Client

Thin async binding for the HuobiHadax spot REST API. It only builds URLs,
sends them through the venue's Requester and unwraps the response envelope;
normalization into our schemas happens in the adapter.

Envelope:
    {"status": "ok", "data": ...}                      most endpoints
    {"status": "ok", "tick": {...}}                    market endpoints
    {"status": "error", "err-code": "...", "err-msg": "..."}

An "error" envelope is raised as VenueError.

Rate Limits:
    100 requests per 10 seconds for both credential classes.

Endpoints Used:
    GET  /v1/common/symbols                        Symbol catalogue
    GET  /market/detail/merged?symbol=             Merged ticker
    GET  /market/depth?symbol=&type=step1          Depth (aggregation step)
    POST /v1/order/orders/place                    Place order (auth)
    POST /v1/order/orders/{id}/submitcancel        Cancel order (auth)
"""

from typing import Any, Dict, List, Optional

from core.errors import VenueError
from core.logging import get_logger
from core.request import Requester


class HuobiHadaxAPIClient:
    """
    Async HTTP binding for HuobiHadax.

    Attributes:
        BASE_URL: Default REST base URL
        requester: Rate-limited dispatcher shared with the adapter
        api_key: API key sent on authenticated calls

    Example:
        >>> client = HuobiHadaxAPIClient(requester)
        >>> symbols = await client.get_symbols()
    """

    BASE_URL = "https://api.hadax.com"
    NAME = "huobihadax"

    def __init__(self, requester: Requester, base_url: str = "", api_key: str = ""):
        self.requester = requester
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.api_key = api_key
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
    ) -> Dict[str, Any]:
        """
        Send a request and unwrap the status envelope.

        Raises:
            VenueError: If the venue answered with status "error"
            TransportError: Propagated from the Requester
        """
        headers = {"Content-Type": "application/json"}
        if auth and self.api_key:
            headers["AccessKeyId"] = self.api_key

        data = await self.requester.send(
            method,
            f"{self.base_url}{path}",
            params=params,
            json=body,
            headers=headers,
            auth=auth,
        )

        if not isinstance(data, dict) or data.get("status") != "ok":
            message = "empty response"
            if isinstance(data, dict):
                message = data.get("err-msg") or data.get("err-code") or "unknown error"
            raise VenueError(self.NAME, message)

        return data

    # ============================================
    # Public Market Data
    # ============================================

    async def get_symbols(self) -> List[Dict[str, Any]]:
        """
        Fetch the symbol catalogue.

        Response Format:
            {"status": "ok", "data": [
                {"base-currency": "btc", "quote-currency": "usdt", "symbol-partition": "main"}
            ]}
        """
        data = await self._request("GET", "/v1/common/symbols")
        symbols = data.get("data") or []
        self.logger.info(f"Fetched {len(symbols)} HuobiHadax symbols")
        return symbols

    async def get_market_detail_merged(self, symbol: str) -> Dict[str, Any]:
        """
        Fetch the merged ticker for a symbol.

        Response Format:
            {"status": "ok", "ts": 1550000000000, "tick": {
                "close": 3650.1, "high": 3700.0, "low": 3600.0, "vol": 1234.5,
                "bid": [3650.0, 1.2], "ask": [3650.2, 0.8]
            }}
        """
        data = await self._request("GET", "/market/detail/merged", params={"symbol": symbol})
        tick = dict(data.get("tick") or {})
        if "ts" in data:
            tick.setdefault("ts", data["ts"])
        return tick

    async def get_depth(self, symbol: str, depth_type: str = "step1") -> Dict[str, Any]:
        """
        Fetch the order book for a symbol.

        Args:
            symbol: Venue symbol (e.g. "btcusdt")
            depth_type: Aggregation step ("step0" = none ... "step5")

        Response Format:
            {"status": "ok", "tick": {"bids": [[3650.0, 1.2], ...], "asks": [[3650.2, 0.8], ...]}}
        """
        data = await self._request("GET", "/market/depth", params={"symbol": symbol, "type": depth_type})
        return data.get("tick") or {}

    # ============================================
    # Trading (authenticated)
    # ============================================

    async def spot_new_order(
        self,
        account_id: int,
        symbol: str,
        order_type: str,
        amount: float,
        price: Optional[float] = None,
        source: str = "api"
    ) -> str:
        """
        Place a spot order.

        Returns:
            str: Venue order id

        Raises:
            VenueError: If the venue rejected the order
        """
        body = {
            "account-id": str(account_id),
            "amount": str(amount),
            "source": source,
            "symbol": symbol,
            "type": order_type,
        }
        if price is not None:
            body["price"] = str(price)

        self.logger.info(f"Placing HuobiHadax order: {order_type} {amount} {symbol}")
        data = await self._request("POST", "/v1/order/orders/place", body=body, auth=True)
        return str(data.get("data") or "")

    async def cancel_existing_order(self, order_id: int) -> str:
        """
        Request cancellation of an order.

        Returns:
            str: Order id acknowledged by the venue
        """
        self.logger.info(f"Cancelling HuobiHadax order {order_id}")
        data = await self._request("POST", f"/v1/order/orders/{order_id}/submitcancel", auth=True)
        return str(data.get("data") or "")
