import logging
from typing import Tuple
from eth_utils import to_checksum_address
from swap_router.errors import PoolError
from swap_router.services.amm_math import MAX_SQRT_RATIO, MIN_SQRT_RATIO, compute_swap_step
from swap_router.services.path_codec import RESERVE_POOL_FEE, PoolKind, sort_tokens

logger = logging.getLogger(__name__)

# Tick spacing per fee tier
TICK_SPACINGS = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}


class ReservePool:
    """Constant-product pool; callers fund it before calling ``swap``"""

    kind = PoolKind.RESERVE
    fee = RESERVE_POOL_FEE
    tick_spacing = 0

    def __init__(self, ledger, address: str, token_a: str, token_b: str):
        self.ledger = ledger
        self.address = to_checksum_address(address)
        self.token0, self.token1 = sort_tokens(to_checksum_address(token_a), to_checksum_address(token_b))
        self.reserve0 = 0
        self.reserve1 = 0

    def get_reserves(self) -> Tuple[int, int]:
        return self.reserve0, self.reserve1

    def sync(self) -> None:
        self.reserve0 = self.ledger.balance_of(self.token0, self.address)
        self.reserve1 = self.ledger.balance_of(self.token1, self.address)

    def swap(self, amount0_out: int, amount1_out: int, to: str, data: bytes = b"") -> None:
        if amount0_out <= 0 and amount1_out <= 0:
            raise PoolError("INSUFFICIENT_OUTPUT_AMOUNT")
        if amount0_out >= self.reserve0 or amount1_out >= self.reserve1:
            raise PoolError("INSUFFICIENT_LIQUIDITY")
        if to_checksum_address(to) in (self.token0, self.token1):
            raise PoolError("INVALID_TO")

        if amount0_out > 0:
            self.ledger.transfer(self.token0, self.address, to, amount0_out)
        if amount1_out > 0:
            self.ledger.transfer(self.token1, self.address, to, amount1_out)

        balance0 = self.ledger.balance_of(self.token0, self.address)
        balance1 = self.ledger.balance_of(self.token1, self.address)
        amount0_in = max(balance0 - (self.reserve0 - amount0_out), 0)
        amount1_in = max(balance1 - (self.reserve1 - amount1_out), 0)
        if amount0_in <= 0 and amount1_in <= 0:
            raise PoolError("INSUFFICIENT_INPUT_AMOUNT")

        adjusted0 = balance0 * 1000 - amount0_in * 3
        adjusted1 = balance1 * 1000 - amount1_in * 3
        if adjusted0 * adjusted1 < self.reserve0 * self.reserve1 * 1000 ** 2:
            raise PoolError("K")

        self.reserve0, self.reserve1 = balance0, balance1
        logger.debug(f"Reserve pool {self.address} swapped, reserves now {balance0}/{balance1}")

    def save_state(self):
        return self.reserve0, self.reserve1

    def restore_state(self, state) -> None:
        self.reserve0, self.reserve1 = state


class TickPool:
    """
    Concentrated-liquidity pool with a single active range.

    ``swap`` pays the output first, then calls back into ``sender`` and
    checks that the input arrived before returning the deltas.
    """

    kind = PoolKind.TICK

    def __init__(
            self,
            ledger,
            address: str,
            token_a: str,
            token_b: str,
            fee: int,
            sqrt_price_x96: int,
            liquidity: int
    ):
        self.ledger = ledger
        self.address = to_checksum_address(address)
        self.token0, self.token1 = sort_tokens(to_checksum_address(token_a), to_checksum_address(token_b))
        self.fee = fee
        self.tick_spacing = TICK_SPACINGS.get(fee, 60)
        self.sqrt_price_x96 = sqrt_price_x96
        self.liquidity = liquidity

    def slot0(self) -> int:
        return self.sqrt_price_x96

    def swap(
            self,
            sender,
            recipient: str,
            zero_for_one: bool,
            amount_specified: int,
            sqrt_price_limit_x96: int,
            data: bytes
    ) -> Tuple[int, int]:
        if amount_specified == 0:
            raise PoolError("AS")
        if zero_for_one:
            valid_limit = MIN_SQRT_RATIO < sqrt_price_limit_x96 < self.sqrt_price_x96
        else:
            valid_limit = self.sqrt_price_x96 < sqrt_price_limit_x96 < MAX_SQRT_RATIO
        if not valid_limit:
            raise PoolError("SPL")

        sqrt_next, amount_in, amount_out, fee_amount = compute_swap_step(
            self.sqrt_price_x96,
            sqrt_price_limit_x96,
            self.liquidity,
            amount_specified,
            self.fee
        )
        amount_in_total = amount_in + fee_amount
        self.sqrt_price_x96 = sqrt_next

        if zero_for_one:
            amount0, amount1 = amount_in_total, -amount_out
            token_in, token_out = self.token0, self.token1
        else:
            amount0, amount1 = -amount_out, amount_in_total
            token_in, token_out = self.token1, self.token0

        if amount_out > 0:
            self.ledger.transfer(token_out, self.address, recipient, amount_out)

        balance_before = self.ledger.balance_of(token_in, self.address)
        sender.on_swap_settled(self, amount0, amount1, data)
        if self.ledger.balance_of(token_in, self.address) < balance_before + amount_in_total:
            raise PoolError("IIA")

        logger.debug(f"Tick pool {self.address} swapped, deltas {amount0}/{amount1}")
        return amount0, amount1

    def save_state(self):
        return self.sqrt_price_x96, self.liquidity

    def restore_state(self, state) -> None:
        self.sqrt_price_x96, self.liquidity = state
