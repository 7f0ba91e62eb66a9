"""Errors raised while routing a swap.

Every ``SwapError`` aborts the whole multi-hop chain; the ledger rolls back
all token movements and no trade record is emitted.
"""


class SwapError(Exception):
    """Base class for swap execution failures"""


class InvalidPath(SwapError):
    """Route is too short or otherwise unusable"""


class MalformedPath(InvalidPath):
    """Encoded path length does not match the hop stride"""


class InvalidAmount(SwapError):
    """Amount is negative or too large to be passed to a pool as a signed value"""


class InvalidCaller(SwapError):
    """Settlement callback did not come from the derived pool address"""


class TooLittleReceived(SwapError):
    def __init__(self, amount_out: int, amount_out_minimum: int):
        super().__init__(f"received {amount_out}, minimum {amount_out_minimum}")
        self.amount_out = amount_out
        self.amount_out_minimum = amount_out_minimum


class TooMuchRequested(SwapError):
    def __init__(self, amount_in: int, amount_in_maximum: int):
        super().__init__(f"requires {amount_in}, maximum {amount_in_maximum}")
        self.amount_in = amount_in
        self.amount_in_maximum = amount_in_maximum


class InvalidAmountOut(SwapError):
    """Pool did not deliver the exact output that was requested"""


class InvalidSwap(SwapError):
    """Settlement callback reported no positive delta"""


class LedgerError(Exception):
    """Failure inside a ledger collaborator (balances, allowances, lookups)"""


class InsufficientBalance(LedgerError):
    pass


class InsufficientAllowance(LedgerError):
    pass


class UnknownToken(LedgerError):
    pass


class PoolNotFound(LedgerError):
    pass


class PoolError(LedgerError):
    """A pool rejected the call; ``reason`` is the pool's short code"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class PriceFeedError(Exception):
    pass
