import logging
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Sequence, Tuple
from eth_utils import to_checksum_address
from swap_router.errors import PriceFeedError
from swap_router.models import (
    PoolSnapshot,
    SwapStep,
    TradeRecord,
    TradeType,
    TraderBalanceSnapshot,
)
from swap_router.services.amm_math import saturating_add, saturating_sub
from swap_router.services.path_codec import Hop

logger = logging.getLogger(__name__)

NATIVE_DECIMALS = 18
USD_DECIMALS = 6


class TradeAccountant:
    """
    Turns realized swap amounts into a TradeRecord.

    USD figures are 6-decimal integers. Tokens on the USD allowlist count at
    face value, the wrapped native token is converted through the price
    feed, anything else is left unpriced (0). The feed is read synchronously
    while a swap runs, so it must be a snapshot (see ``priced_by``).
    """

    def __init__(self, ledger, price_feed, usd_tokens: Iterable[str], wrapped_native: str):
        self.ledger = ledger
        self.price_feed = price_feed
        self.usd_tokens = {to_checksum_address(token) for token in usd_tokens}
        self.wrapped_native = to_checksum_address(wrapped_native)

    def prices_native(self, tokens: Iterable[str]) -> bool:
        """True when valuing a trade over these tokens needs the native price"""
        return any(to_checksum_address(token) == self.wrapped_native for token in tokens)

    @contextmanager
    def priced_by(self, price_feed) -> Iterator["TradeAccountant"]:
        previous = self.price_feed
        self.price_feed = price_feed
        try:
            yield self
        finally:
            self.price_feed = previous

    def balance_of(self, token: str, owner: str) -> int:
        balance = self.ledger.balance_of(token, owner)
        if to_checksum_address(token) == self.wrapped_native:
            balance += self.ledger.native_balance_of(owner)
        return balance

    def balances_before(self, trader: str, token_sold: str, token_bought: str) -> Tuple[int, int]:
        return self.balance_of(token_sold, trader), self.balance_of(token_bought, trader)

    def _native_to_usd(self, amount: int) -> int:
        if self.price_feed is None:
            raise PriceFeedError("no native price available")
        price, decimals = self.price_feed.latest_price()
        return amount * price // 10 ** (decimals + NATIVE_DECIMALS - USD_DECIMALS)

    def _token_usd(self, token: str, amount: int):
        token = to_checksum_address(token)
        if token in self.usd_tokens:
            return amount
        if token == self.wrapped_native:
            return self._native_to_usd(amount)
        return None

    def usd_value(self, token_sold: str, amount_sold: int, token_bought: str, amount_bought: int) -> int:
        value = self._token_usd(token_sold, amount_sold)
        if value is None:
            value = self._token_usd(token_bought, amount_bought)
        return value or 0

    def fees_usd(self, hops: Sequence[Hop], steps: Sequence[SwapStep]) -> List[int]:
        return [
            self.usd_value(hop.token_in, step.fee_in_token_in, hop.token_out, step.fee_in_token_out)
            for hop, step in zip(hops, steps)
        ]

    def snapshot_pool(self, address: str) -> PoolSnapshot:
        pool = self.ledger.pool(address)
        return PoolSnapshot(
            token0=self.ledger.describe(pool.token0),
            token1=self.ledger.describe(pool.token1),
            address=pool.address,
            fee=pool.fee,
            tick_spacing=pool.tick_spacing,
        )

    def report(
            self,
            trader: str,
            exchange: str,
            trade_type: TradeType,
            hops: Sequence[Hop],
            pool_addresses: Sequence[str],
            steps: Sequence[SwapStep],
            amount_sold: int,
            amount_bought: int,
            balances_before: Tuple[int, int]
    ) -> TradeRecord:
        token_sold = hops[0].token_in
        token_bought = hops[-1].token_out
        sold_before, bought_before = balances_before

        record = TradeRecord(
            trader=to_checksum_address(trader),
            usd_value=self.usd_value(token_sold, amount_sold, token_bought, amount_bought),
            exchange=exchange,
            amount_sold=amount_sold,
            token_sold=self.ledger.describe(token_sold),
            amount_bought=amount_bought,
            token_bought=self.ledger.describe(token_bought),
            route=[self.snapshot_pool(address) for address in pool_addresses],
            balances=TraderBalanceSnapshot(
                sold_before=sold_before,
                sold_after=saturating_sub(sold_before, amount_sold),
                bought_before=bought_before,
                bought_after=saturating_add(bought_before, amount_bought),
            ),
            trade_type=trade_type,
            fees=list(steps),
            fees_usd=self.fees_usd(hops, steps),
        )
        self.ledger.emit(record)
        logger.info(
            f"Trade on {exchange}: {amount_sold} {record.token_sold.symbol} -> "
            f"{amount_bought} {record.token_bought.symbol} (${record.usd_value / 10 ** USD_DECIMALS:.2f})"
        )
        return record
