"""
Order Normalizer

Turns a generic order intent into venue-native parameters and checks it can
be funded, all before any submission call is made.

Order lifecycle:
    Requested -> Validated -> (Funded | Rejected-insufficient-funds)
              -> Submitted -> (Accepted | Rejected-by-venue)

Only the four combinations {buy, sell} x {market, limit} are submittable.
Each venue passes its own table mapping those four combinations to its
native order type string.

Example:
    normalizer = OrderNormalizer("huobihadax", {
        (OrderSide.BUY, OrderKind.MARKET): "buy-market",
        (OrderSide.SELL, OrderKind.MARKET): "sell-market",
        (OrderSide.BUY, OrderKind.LIMIT): "buy-limit",
        (OrderSide.SELL, OrderKind.LIMIT): "sell-limit",
    })
    request = normalizer.normalize(pair, "buy", "limit", 1.0, 20000.0)
"""

from typing import Dict, Iterable, Tuple, Union

from core.errors import InsufficientFundsError, InvalidRequestError, VenueError
from core.logging import get_logger
from core.schemas import CurrencyPair, OrderKind, OrderRequest, OrderSide, SubmitOrderResponse, Wallet

logger = get_logger(__name__)

SUBMITTABLE_SIDES = (OrderSide.BUY, OrderSide.SELL)
SUBMITTABLE_KINDS = (OrderKind.MARKET, OrderKind.LIMIT)

TypeTable = Dict[Tuple[OrderSide, OrderKind], str]


class OrderNormalizer:
    """
    Venue-specific order parameter mapping.

    Args:
        exchange: Venue identifier (used in errors and logs)
        type_table: Native order type for each submittable (side, kind)

    Raises:
        ValueError: If the table does not cover all four combinations
    """

    def __init__(self, exchange: str, type_table: TypeTable):
        missing = [
            (side.value, kind.value)
            for side in SUBMITTABLE_SIDES
            for kind in SUBMITTABLE_KINDS
            if (side, kind) not in type_table
        ]
        if missing:
            raise ValueError(f"{exchange}: order type table is missing {missing}")

        self.exchange = exchange
        self.type_table = dict(type_table)

    def validate(
        self,
        side: Union[OrderSide, str],
        order_kind: Union[OrderKind, str]
    ) -> Tuple[OrderSide, OrderKind]:
        """
        Coerce and check a (side, kind) pair.

        Raises:
            InvalidRequestError: For any combination outside {buy,sell} x {market,limit}
        """
        try:
            side_value = OrderSide(side.lower() if isinstance(side, str) else side)
            kind_value = OrderKind(order_kind.lower() if isinstance(order_kind, str) else order_kind)
        except ValueError:
            raise InvalidRequestError(
                f"{self.exchange}: unsupported order type {side!s}/{order_kind!s}",
                self.exchange
            )

        if side_value not in SUBMITTABLE_SIDES or kind_value not in SUBMITTABLE_KINDS:
            raise InvalidRequestError(
                f"{self.exchange}: unsupported order type {side_value.value}/{kind_value.value}",
                self.exchange
            )

        return side_value, kind_value

    def normalize(
        self,
        pair: CurrencyPair,
        side: Union[OrderSide, str],
        order_kind: Union[OrderKind, str],
        amount: float,
        price: float = 0.0,
        client_ref: str = ""
    ) -> OrderRequest:
        """
        Build the venue-native order request.

        Price is attached for limit orders only.

        Raises:
            InvalidRequestError: Bad side/kind, non-positive amount, or a
                limit order without a positive price
        """
        side_value, kind_value = self.validate(side, order_kind)

        if amount <= 0:
            raise InvalidRequestError(f"{self.exchange}: amount must be positive, got {amount}", self.exchange)

        order_price = None
        if kind_value == OrderKind.LIMIT:
            if price is None or price <= 0:
                raise InvalidRequestError(
                    f"{self.exchange}: limit order requires a positive price, got {price}",
                    self.exchange
                )
            order_price = price

        return OrderRequest(
            pair=pair,
            side=side_value,
            order_kind=kind_value,
            native_type=self.type_table[(side_value, kind_value)],
            amount=amount,
            price=order_price,
            client_ref=client_ref,
        )

    def select_funding_source(self, wallets: Iterable[Wallet], currency: str, amount: float) -> Wallet:
        """
        Pick the first wallet holding at least `amount` of `currency` available.

        Raises:
            InsufficientFundsError: If no wallet qualifies
        """
        currency = currency.upper()
        for wallet in wallets:
            for balance in wallet.balances:
                if balance.currency == currency and balance.available_balance >= amount:
                    logger.debug(f"{self.exchange}: funding order from wallet {wallet.id}")
                    return wallet

        raise InsufficientFundsError(self.exchange, currency, amount)

    def rejected(self, error: VenueError) -> SubmitOrderResponse:
        """Response for an order the venue refused."""
        logger.warning(f"{self.exchange}: order rejected by venue: {error.venue_message}")
        return SubmitOrderResponse(
            order_id=error.order_id,
            is_order_placed=False,
            message=error.venue_message,
        )

    def accepted(self, order_id) -> SubmitOrderResponse:
        """Response for an order the venue accepted."""
        order_id = "" if order_id is None else str(order_id)
        logger.info(f"{self.exchange}: order placed (id={order_id or 'n/a'})")
        return SubmitOrderResponse(order_id=order_id, is_order_placed=True)


def parse_order_id(exchange: str, order_id: str, base: int = 10) -> int:
    """
    Parse a venue order or account identifier as an integer.

    Use base=0 to accept 0x/0o/0b prefixed values.

    Raises:
        InvalidRequestError: If the identifier is not an integer
    """
    try:
        return int(str(order_id).strip(), base)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"{exchange}: invalid identifier '{order_id}'", exchange)
