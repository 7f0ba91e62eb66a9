import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple
from eth_abi import decode, encode
from eth_utils import to_checksum_address
from swap_router.config import settings
from swap_router.errors import (
    InvalidAmountOut,
    InvalidCaller,
    InvalidPath,
    InvalidSwap,
    TooLittleReceived,
    TooMuchRequested,
)
from swap_router.models import Route, SwapStep, TradeRecord, TradeType
from swap_router.services.amm_math import (
    MAX_SQRT_RATIO,
    MIN_SQRT_RATIO,
    UINT256_MAX,
    build_swap_step,
    get_amount_out_tick_without_fee,
    require_amount,
)
from swap_router.services.path_codec import (
    Hop,
    PoolKind,
    decode_hop,
    decode_route,
    encode_route,
    first_hop,
    has_more_hops,
    skip_token,
)
from swap_router.services.payments import Payments
from swap_router.services.reserve_engine import FULL_BALANCE

logger = logging.getLogger(__name__)

AMOUNT_IN_CACHED_UNSET = UINT256_MAX


def encode_callback_data(path: bytes, payer: str) -> bytes:
    return encode(["bytes", "address"], [path, payer])


def decode_callback_data(data: bytes) -> Tuple[bytes, str]:
    path, payer = decode(["bytes", "address"], data)
    return path, to_checksum_address(payer)


def _is_lower(token_a: str, token_b: str) -> bool:
    return int(token_a, 16) < int(token_b, 16)


@dataclass
class _ExactOutputContext:
    amount_in_maximum: int
    amount_in: Optional[int] = None
    steps: List[SwapStep] = field(default_factory=list)


class TickSwapEngine:
    """
    Multi-hop swaps through concentrated-liquidity pools.

    Pools pull payment through ``on_swap_settled`` while their ``swap`` call
    is still on the stack. Exact-input routes are walked hop by hop by the
    engine; exact-output routes are encoded output-first and each callback
    starts the swap for the previous hop, so the original payer only ever
    pays the first pool of the route.
    """

    def __init__(
            self,
            ledger,
            locator,
            accountant,
            address: str = settings.ROUTER_ADDRESS,
            exchange: str = settings.V3_EXCHANGE_TAG
    ):
        self.ledger = ledger
        self.locator = locator
        self.accountant = accountant
        self.address = to_checksum_address(address)
        self.exchange = exchange
        self.payments = Payments(ledger, self.address)
        self._exact_output: Optional[_ExactOutputContext] = None

    @property
    def amount_in_cached(self) -> int:
        """Slippage bound of the exact-output swap in progress, or the unset sentinel"""
        if self._exact_output is None:
            return AMOUNT_IN_CACHED_UNSET
        return self._exact_output.amount_in_maximum

    @contextmanager
    def _exact_output_guard(self, amount_in_maximum: int) -> Iterator[_ExactOutputContext]:
        self._exact_output = _ExactOutputContext(amount_in_maximum)
        try:
            yield self._exact_output
        finally:
            self._exact_output = None

    def _hops(self, route: Route) -> List[Hop]:
        if not route.fees:
            raise InvalidPath("tick routes need a fee tier per hop")
        return decode_route(encode_route(route.tokens, route.fees), PoolKind.TICK)

    def _pool_address(self, token_a: str, token_b: str, fee: int) -> str:
        return self.locator.pool_address(token_a, token_b, fee)

    def _swap(self, amount_specified: int, recipient: str, token_in: str, token_out: str, fee: int, data: bytes):
        """
        Issue one pool swap; positive ``amount_specified`` is exact input,
        negative is exact output. Returns the deltas and the pool state the
        swap started from.
        """
        zero_for_one = _is_lower(token_in, token_out)
        pool = self.ledger.pool(self._pool_address(token_in, token_out, fee))
        sqrt_price_before, liquidity_before = pool.slot0(), pool.liquidity

        amount0, amount1 = pool.swap(
            self,
            recipient,
            zero_for_one,
            amount_specified,
            MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1,
            data
        )
        return amount0, amount1, zero_for_one, sqrt_price_before, liquidity_before

    def _exact_input_internal(self, amount_in: int, recipient: str, path: bytes, payer: str) -> Tuple[int, int]:
        hop, _ = decode_hop(path)
        amount0, amount1, zero_for_one, sqrt_price, liquidity = self._swap(
            amount_in,
            recipient,
            hop.token_in,
            hop.token_out,
            hop.fee,
            encode_callback_data(path, payer)
        )
        amount_out = -(amount1 if zero_for_one else amount0)
        no_fee_amount_out = get_amount_out_tick_without_fee(sqrt_price, liquidity, amount_in, zero_for_one)
        return amount_out, no_fee_amount_out

    def _exact_output_internal(self, amount_out: int, recipient: str, path: bytes, payer: str) -> int:
        # exact-output paths are reversed: the hop's first token is the one bought
        hop, _ = decode_hop(path)
        token_out, token_in = hop.token_in, hop.token_out
        amount0, amount1, zero_for_one, sqrt_price, liquidity = self._swap(
            -amount_out,
            recipient,
            token_in,
            token_out,
            hop.fee,
            encode_callback_data(path, payer)
        )
        if zero_for_one:
            amount_in, amount_out_received = amount0, -amount1
        else:
            amount_in, amount_out_received = amount1, -amount0
        if amount_out_received != amount_out:
            raise InvalidAmountOut(f"pool delivered {amount_out_received} of {token_out}, requested {amount_out}")

        self._exact_output.steps.append(build_swap_step(
            amount_in,
            amount_out_received,
            get_amount_out_tick_without_fee(sqrt_price, liquidity, amount_in, zero_for_one),
            hop.fee
        ))
        return amount_in

    def on_swap_settled(self, caller, amount0_delta: int, amount1_delta: int, data: bytes) -> None:
        """
        Pay the calling pool, or continue an exact-output chain one hop back.

        ``caller`` is the pool object making the callback. It must be the
        very pool registered at the address derived from the hop in
        ``data``; an address alone is not accepted.
        """
        if amount0_delta <= 0 and amount1_delta <= 0:
            raise InvalidSwap("swap settled with no positive delta")

        path, payer = decode_callback_data(data)
        hop, _ = decode_hop(path)
        expected = self._pool_address(hop.token_in, hop.token_out, hop.fee)
        pool = self.ledger.find_pool(expected)
        if pool is None or caller is not pool:
            raise InvalidCaller(f"{getattr(caller, 'address', caller)} is not the pool {expected}")
        caller = pool.address

        if amount0_delta > 0:
            is_exact_input, amount_to_pay = _is_lower(hop.token_in, hop.token_out), amount0_delta
        else:
            is_exact_input, amount_to_pay = _is_lower(hop.token_out, hop.token_in), amount1_delta

        if is_exact_input:
            self.payments.pay(hop.token_in, payer, caller, amount_to_pay)
            return

        if self._exact_output is None:
            raise InvalidSwap("no exact-output swap in progress")
        if has_more_hops(path):
            self._exact_output_internal(amount_to_pay, caller, skip_token(path), payer)
            return

        if amount_to_pay > self._exact_output.amount_in_maximum:
            raise TooMuchRequested(amount_to_pay, self._exact_output.amount_in_maximum)
        self._exact_output.amount_in = amount_to_pay
        # the last hop of a reversed path ends at the token being sold
        self.payments.pay(hop.token_out, payer, caller, amount_to_pay)

    def swap_exact_input(
            self,
            route: Route,
            recipient: str,
            amount_in: int,
            amount_out_minimum: int,
            payer: str,
            trader: Optional[str] = None
    ) -> TradeRecord:
        if amount_in != FULL_BALANCE:
            require_amount("amount_in", amount_in)
        require_amount("amount_out_minimum", amount_out_minimum, UINT256_MAX)
        hops = self._hops(route)
        payer = to_checksum_address(payer)
        trader = trader or payer
        token_in, token_out = hops[0].token_in, hops[-1].token_out
        path = encode_route(route.tokens, route.fees)

        with self.ledger.atomic():
            balances_before = self.accountant.balances_before(trader, token_in, token_out)
            if amount_in == FULL_BALANCE:
                amount_in = self.payments.balance(token_in)
                payer = self.address
            amount_sold = amount_in

            steps = []
            while True:
                has_multiple = has_more_hops(path)
                hop, _ = decode_hop(path)
                amount_out, no_fee_amount_out = self._exact_input_internal(
                    amount_in,
                    self.address if has_multiple else recipient,
                    first_hop(path),
                    payer
                )
                steps.append(build_swap_step(amount_in, amount_out, no_fee_amount_out, hop.fee))
                logger.debug(f"Hop {len(steps) - 1}: {amount_in} {hop.token_in} -> {amount_out} {hop.token_out}")

                if not has_multiple:
                    break
                # the engine holds the intermediate tokens and pays the next pool
                payer = self.address
                amount_in = amount_out
                path = skip_token(path)

            if amount_out < amount_out_minimum:
                raise TooLittleReceived(amount_out, amount_out_minimum)

            return self.accountant.report(
                trader=trader,
                exchange=self.exchange,
                trade_type=TradeType.EXACT_INPUT,
                hops=hops,
                pool_addresses=[self._pool_address(hop.token_in, hop.token_out, hop.fee) for hop in hops],
                steps=steps,
                amount_sold=amount_sold,
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
        require_amount("amount_out", amount_out)
        require_amount("amount_in_maximum", amount_in_maximum, UINT256_MAX)
        hops = self._hops(route)
        payer = to_checksum_address(payer)
        trader = trader or payer
        token_in, token_out = hops[0].token_in, hops[-1].token_out
        path = encode_route(route.tokens, route.fees, reverse=True)

        with self.ledger.atomic():
            balances_before = self.accountant.balances_before(trader, token_in, token_out)
            with self._exact_output_guard(amount_in_maximum) as context:
                self._exact_output_internal(amount_out, recipient, path, payer)
                amount_in = context.amount_in
                steps = context.steps

            return self.accountant.report(
                trader=trader,
                exchange=self.exchange,
                trade_type=TradeType.EXACT_OUTPUT,
                hops=hops,
                pool_addresses=[self._pool_address(hop.token_in, hop.token_out, hop.fee) for hop in hops],
                steps=steps,
                amount_sold=amount_in,
                amount_bought=amount_out,
                balances_before=balances_before,
            )
