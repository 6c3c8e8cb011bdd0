"""
Gateway Error Taxonomy

Every failure a venue adapter can report is one of the classes below.
Callers branch on the class, never on message text:

    ExchangeError
    ├── CapabilityError
    │   ├── UnsupportedError        venue structurally cannot do this
    │   └── NotYetImplementedError  adapter gap, binding not wired yet
    ├── InvalidRequestError         bad side/kind combination, malformed ids
    ├── InsufficientFundsError      no funding source covers the order
    ├── TransportError              timeout, connection failure, non-2xx
    └── VenueError                  venue answered with an error payload

PartialDataWarning is not raised. It describes a field that could not be
parsed and was replaced by zero; the adapter logs it and carries on.
"""

from typing import Optional


class ExchangeError(Exception):
    """Base class for all errors raised by venue adapters."""

    def __init__(self, message: str, exchange: Optional[str] = None):
        super().__init__(message)
        self.exchange = exchange


class CapabilityError(ExchangeError):
    """
    An operation the adapter cannot serve.

    Terminal for the call: retrying will never succeed.
    """

    reason = "unavailable"

    def __init__(self, exchange: str, operation: str):
        super().__init__(f"{exchange}: {operation} is {self.reason}", exchange)
        self.operation = operation


class UnsupportedError(CapabilityError):
    reason = "not supported by this venue"


class NotYetImplementedError(CapabilityError):
    reason = "not yet implemented"


class InvalidRequestError(ExchangeError):
    """Caller input rejected before any network call."""


class InsufficientFundsError(ExchangeError):
    """No funding source holds enough of the required currency."""

    def __init__(self, exchange: str, currency: str, amount: float):
        super().__init__(
            f"{exchange}: no wallet found with currency {currency} "
            f"with available amount >= {amount}",
            exchange
        )
        self.currency = currency
        self.amount = amount


class TransportError(ExchangeError):
    """
    The HTTP exchange itself failed.

    Raised for timeouts, connection errors and non-2xx statuses. The
    dispatcher never retries; retry policy belongs to the caller.
    """

    def __init__(
        self,
        message: str,
        exchange: Optional[str] = None,
        status: Optional[int] = None,
        url: Optional[str] = None
    ):
        super().__init__(message, exchange)
        self.status = status
        self.url = url


class VenueError(ExchangeError):
    """The venue responded successfully at HTTP level but reported an error."""

    def __init__(self, exchange: str, message: str, order_id: str = ""):
        super().__init__(f"{exchange} rejected request: {message}", exchange)
        self.venue_message = message
        self.order_id = order_id


class PartialDataWarning(UserWarning):
    """A market data field was unparsable and substituted with zero."""

    def __init__(self, exchange: str, field: str, raw_value):
        super().__init__(
            f"{exchange}: could not parse {field} value {raw_value!r}, using 0"
        )
        self.exchange = exchange
        self.field = field
        self.raw_value = raw_value
