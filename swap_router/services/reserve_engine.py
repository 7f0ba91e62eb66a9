import logging
from typing import List, Optional, Sequence, Tuple
from eth_utils import to_checksum_address
from swap_router.config import settings
from swap_router.errors import InvalidPath, TooLittleReceived, TooMuchRequested
from swap_router.models import Route, SwapStep, TradeRecord, TradeType
from swap_router.services.amm_math import (
    UINT256_MAX,
    build_swap_step,
    get_amount_in,
    get_amount_out,
    get_amount_out_without_fee,
    require_amount,
)
from swap_router.services.path_codec import Hop, PoolKind, decode_route, encode_path, sort_tokens
from swap_router.services.payments import Payments

logger = logging.getLogger(__name__)

# amount_in sentinels for exact-input swaps
ALREADY_FUNDED = 0
FULL_BALANCE = 1 << 255


class ReserveSwapEngine:
    """
    Multi-hop swaps through constant-product pools.

    Each pool is funded before its ``swap`` call: the first by the payer,
    the rest by the previous pool sending its output straight to them. The
    amount a pool received is read from its balance, so tokens that take a
    cut on transfer are handled.
    """

    def __init__(
            self,
            ledger,
            locator,
            accountant,
            address: str = settings.ROUTER_ADDRESS,
            exchange: str = settings.V2_EXCHANGE_TAG
    ):
        self.ledger = ledger
        self.locator = locator
        self.accountant = accountant
        self.address = to_checksum_address(address)
        self.exchange = exchange
        self.payments = Payments(ledger, self.address)

    def _hops(self, route: Route) -> List[Hop]:
        if route.fees:
            raise InvalidPath("reserve routes carry no fee tiers")
        return decode_route(encode_path(route.tokens), PoolKind.RESERVE)

    def _pool_address(self, hop: Hop) -> str:
        return self.locator.pool_address(hop.token_in, hop.token_out)

    def _reserves(self, hop: Hop, pool) -> Tuple[int, int]:
        token0, _ = sort_tokens(hop.token_in, hop.token_out)
        reserve0, reserve1 = pool.get_reserves()
        if hop.token_in == token0:
            return reserve0, reserve1
        return reserve1, reserve0

    def quote_exact_input(self, route: Route, amount_in: int) -> List[int]:
        """Amounts along the route for a given input, first entry is the input"""
        amounts = [amount_in]
        for hop in self._hops(route):
            reserve_in, reserve_out = self._reserves(hop, self.ledger.pool(self._pool_address(hop)))
            amounts.append(get_amount_out(amounts[-1], reserve_in, reserve_out))
        return amounts

    def quote_exact_output(self, route: Route, amount_out: int) -> List[int]:
        """Amounts along the route for a given output, last entry is the output"""
        amounts = [amount_out]
        for hop in reversed(self._hops(route)):
            reserve_in, reserve_out = self._reserves(hop, self.ledger.pool(self._pool_address(hop)))
            amounts.insert(0, get_amount_in(amounts[0], reserve_in, reserve_out))
        return amounts

    def _swap(self, hops: Sequence[Hop], recipient: str, pool_address: str) -> List[SwapStep]:
        steps = []
        for i, hop in enumerate(hops):
            pool = self.ledger.pool(pool_address)
            reserve_in, reserve_out = self._reserves(hop, pool)
            amount_in = self.ledger.balance_of(hop.token_in, pool_address) - reserve_in
            amount_out = get_amount_out(amount_in, reserve_in, reserve_out)
            steps.append(build_swap_step(
                amount_in,
                amount_out,
                get_amount_out_without_fee(amount_in, reserve_in, reserve_out),
                hop.fee
            ))

            if hop.token_in == pool.token0:
                amount0_out, amount1_out = 0, amount_out
            else:
                amount0_out, amount1_out = amount_out, 0
            next_address = self._pool_address(hops[i + 1]) if i < len(hops) - 1 else recipient

            logger.debug(f"Hop {i}: {amount_in} {hop.token_in} -> {amount_out} {hop.token_out} via {pool_address}")
            pool.swap(amount0_out, amount1_out, next_address, b"")
            pool_address = next_address
        return steps

    def swap_exact_input(
            self,
            route: Route,
            recipient: str,
            amount_in: int,
            amount_out_minimum: int,
            payer: str,
            trader: Optional[str] = None
    ) -> TradeRecord:
        """
        Sell ``amount_in`` of the route's first token.

        ``ALREADY_FUNDED`` skips payment because the first pool already holds
        the input; ``FULL_BALANCE`` spends the engine's whole balance.
        """
        if amount_in != FULL_BALANCE:
            require_amount("amount_in", amount_in)
        require_amount("amount_out_minimum", amount_out_minimum, UINT256_MAX)
        hops = self._hops(route)
        trader = trader or payer
        token_in, token_out = hops[0].token_in, hops[-1].token_out

        with self.ledger.atomic():
            balances_before = self.accountant.balances_before(trader, token_in, token_out)
            first_pool = self._pool_address(hops[0])

            if amount_in == FULL_BALANCE:
                amount_in = self.payments.balance(token_in)
                payer = self.address
            if amount_in != ALREADY_FUNDED:
                self.payments.pay(token_in, payer, first_pool, amount_in)

            balance_before = self.ledger.balance_of(token_out, recipient)
            steps = self._swap(hops, recipient, first_pool)
            amount_out = self.ledger.balance_of(token_out, recipient) - balance_before
            if amount_out < amount_out_minimum:
                raise TooLittleReceived(amount_out, amount_out_minimum)

            return self.accountant.report(
                trader=trader,
                exchange=self.exchange,
                trade_type=TradeType.EXACT_INPUT,
                hops=hops,
                pool_addresses=[self._pool_address(hop) for hop in hops],
                steps=steps,
                amount_sold=amount_in if amount_in != ALREADY_FUNDED else steps[0].amount_in,
                amount_bought=amount_out,
                balances_before=balances_before,
            )

    def swap_exact_output(
            self,
            route: Route,
            recipient: str,
            amount_out: int,
            amount_in_maximum: int,
            payer: str,
            trader: Optional[str] = None
    ) -> TradeRecord:
        """Buy ``amount_out`` of the route's last token, spending at most ``amount_in_maximum``"""
        require_amount("amount_out", amount_out)
        require_amount("amount_in_maximum", amount_in_maximum, UINT256_MAX)
        hops = self._hops(route)
        trader = trader or payer
        token_in, token_out = hops[0].token_in, hops[-1].token_out

        with self.ledger.atomic():
            balances_before = self.accountant.balances_before(trader, token_in, token_out)

            amount_in = self.quote_exact_output(route, amount_out)[0]
            if amount_in > amount_in_maximum:
                raise TooMuchRequested(amount_in, amount_in_maximum)

            first_pool = self._pool_address(hops[0])
            self.payments.pay(token_in, payer, first_pool, amount_in)

            balance_before = self.ledger.balance_of(token_out, recipient)
            steps = self._swap(hops, recipient, first_pool)
            amount_bought = self.ledger.balance_of(token_out, recipient) - balance_before

            return self.accountant.report(
                trader=trader,
                exchange=self.exchange,
                trade_type=TradeType.EXACT_OUTPUT,
                hops=hops,
                pool_addresses=[self._pool_address(hop) for hop in hops],
                steps=steps,
                amount_sold=amount_in,
                amount_bought=amount_bought,
                balances_before=balances_before,
            )
