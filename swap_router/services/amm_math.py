"""
Integer AMM math shared by the engines and the pools.

Reserve pools use the constant-product formula with a 0.3% input fee.
Tick pools use Q64.96 square-root prices; only a single active liquidity
range is modelled, so every swap is one ``compute_swap_step``.
All rounding follows the on-chain libraries: outputs round down, inputs up.
"""
from typing import Tuple
from swap_router.errors import InvalidAmount, PoolError
from swap_router.models import SwapStep

Q96 = 1 << 96
UINT256_MAX = (1 << 256) - 1
INT256_MAX = (1 << 255) - 1
FEE_DENOMINATOR = 1_000_000

# Price-boundary sentinels of the tick protocol
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342


def require_amount(name: str, value: int, maximum: int = INT256_MAX) -> int:
    """Reject amounts that would not survive the uint256 to int256 conversion"""
    if not 0 <= value <= maximum:
        raise InvalidAmount(f"{name} {value} is outside [0, {maximum}]")
    return value


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    return -(-(a * b) // denominator)


def div_rounding_up(a: int, denominator: int) -> int:
    return -(-a // denominator)


# Reserve-based pools

def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    if amount_in <= 0:
        raise PoolError("INSUFFICIENT_INPUT_AMOUNT")
    if reserve_in <= 0 or reserve_out <= 0:
        raise PoolError("INSUFFICIENT_LIQUIDITY")
    amount_in_with_fee = amount_in * 997
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * 1000 + amount_in_with_fee
    return numerator // denominator


def get_amount_out_without_fee(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """Output the same reserves would give if the pool charged nothing"""
    if reserve_in + amount_in <= 0:
        return 0
    return amount_in * reserve_out // (reserve_in + amount_in)


def get_amount_in(amount_out: int, reserve_in: int, reserve_out: int) -> int:
    if amount_out <= 0:
        raise PoolError("INSUFFICIENT_OUTPUT_AMOUNT")
    if reserve_in <= 0 or reserve_out <= amount_out:
        raise PoolError("INSUFFICIENT_LIQUIDITY")
    numerator = reserve_in * amount_out * 1000
    denominator = (reserve_out - amount_out) * 997
    return numerator // denominator + 1


# Tick-based pools

def get_amount0_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    lower, upper = min(sqrt_a, sqrt_b), max(sqrt_a, sqrt_b)
    numerator1 = liquidity << 96
    numerator2 = upper - lower
    if round_up:
        return div_rounding_up(mul_div_rounding_up(numerator1, numerator2, upper), lower)
    return numerator1 * numerator2 // upper // lower


def get_amount1_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    lower, upper = min(sqrt_a, sqrt_b), max(sqrt_a, sqrt_b)
    if round_up:
        return mul_div_rounding_up(liquidity, upper - lower, Q96)
    return liquidity * (upper - lower) // Q96


def _next_sqrt_price_from_amount0(sqrt_price: int, liquidity: int, amount: int, add: bool) -> int:
    if amount == 0:
        return sqrt_price
    numerator1 = liquidity << 96
    product = amount * sqrt_price
    if add:
        return mul_div_rounding_up(numerator1, sqrt_price, numerator1 + product)
    if numerator1 <= product:
        raise PoolError("INSUFFICIENT_LIQUIDITY")
    return mul_div_rounding_up(numerator1, sqrt_price, numerator1 - product)


def _next_sqrt_price_from_amount1(sqrt_price: int, liquidity: int, amount: int, add: bool) -> int:
    if add:
        return sqrt_price + (amount << 96) // liquidity
    quotient = div_rounding_up(amount << 96, liquidity)
    if sqrt_price <= quotient:
        raise PoolError("INSUFFICIENT_LIQUIDITY")
    return sqrt_price - quotient


def next_sqrt_price_from_input(sqrt_price: int, liquidity: int, amount_in: int, zero_for_one: bool) -> int:
    if zero_for_one:
        return _next_sqrt_price_from_amount0(sqrt_price, liquidity, amount_in, True)
    return _next_sqrt_price_from_amount1(sqrt_price, liquidity, amount_in, True)


def next_sqrt_price_from_output(sqrt_price: int, liquidity: int, amount_out: int, zero_for_one: bool) -> int:
    if zero_for_one:
        return _next_sqrt_price_from_amount1(sqrt_price, liquidity, amount_out, False)
    return _next_sqrt_price_from_amount0(sqrt_price, liquidity, amount_out, False)


def compute_swap_step(
        sqrt_price: int,
        sqrt_price_target: int,
        liquidity: int,
        amount_remaining: int,
        fee_pips: int
) -> Tuple[int, int, int, int]:
    """
    Swap within one liquidity range towards ``sqrt_price_target``.

    ``amount_remaining`` is positive for exact input, negative for exact
    output. Returns (next sqrt price, amount in, amount out, fee amount).
    """
    zero_for_one = sqrt_price >= sqrt_price_target
    exact_in = amount_remaining >= 0

    if exact_in:
        amount_less_fee = amount_remaining * (FEE_DENOMINATOR - fee_pips) // FEE_DENOMINATOR
        if zero_for_one:
            amount_in = get_amount0_delta(sqrt_price_target, sqrt_price, liquidity, True)
        else:
            amount_in = get_amount1_delta(sqrt_price, sqrt_price_target, liquidity, True)
        if amount_less_fee >= amount_in:
            sqrt_next = sqrt_price_target
        else:
            sqrt_next = next_sqrt_price_from_input(sqrt_price, liquidity, amount_less_fee, zero_for_one)
    else:
        if zero_for_one:
            amount_out = get_amount1_delta(sqrt_price_target, sqrt_price, liquidity, False)
        else:
            amount_out = get_amount0_delta(sqrt_price, sqrt_price_target, liquidity, False)
        if -amount_remaining >= amount_out:
            sqrt_next = sqrt_price_target
        else:
            sqrt_next = next_sqrt_price_from_output(sqrt_price, liquidity, -amount_remaining, zero_for_one)

    reached_target = sqrt_next == sqrt_price_target
    if zero_for_one:
        if not (reached_target and exact_in):
            amount_in = get_amount0_delta(sqrt_next, sqrt_price, liquidity, True)
        if not (reached_target and not exact_in):
            amount_out = get_amount1_delta(sqrt_next, sqrt_price, liquidity, False)
    else:
        if not (reached_target and exact_in):
            amount_in = get_amount1_delta(sqrt_price, sqrt_next, liquidity, True)
        if not (reached_target and not exact_in):
            amount_out = get_amount0_delta(sqrt_price, sqrt_next, liquidity, False)

    # cap the output amount to not exceed the remaining output amount
    if not exact_in and amount_out > -amount_remaining:
        amount_out = -amount_remaining

    if exact_in and not reached_target:
        fee_amount = amount_remaining - amount_in
    else:
        fee_amount = mul_div_rounding_up(amount_in, fee_pips, FEE_DENOMINATOR - fee_pips)

    return sqrt_next, amount_in, amount_out, fee_amount


def get_amount_out_tick_without_fee(sqrt_price: int, liquidity: int, amount_in: int, zero_for_one: bool) -> int:
    """Output of a fee-free exact-input swap from the given pool state"""
    if liquidity == 0 or amount_in <= 0:
        return 0
    target = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1
    _, _, amount_out, _ = compute_swap_step(sqrt_price, target, liquidity, amount_in, 0)
    return amount_out


def build_swap_step(amount_in: int, amount_out: int, no_fee_amount_out: int, fee_pips: int) -> SwapStep:
    """Split one hop's fee into its input-token and output-token views"""
    return SwapStep(
        amount_in=amount_in,
        amount_out=amount_out,
        fee_in_token_in=amount_in * fee_pips // FEE_DENOMINATOR,
        fee_in_token_out=no_fee_amount_out - amount_out,
    )


def saturating_sub(a: int, b: int) -> int:
    return a - b if a > b else 0


def saturating_add(a: int, b: int) -> int:
    return min(a + b, UINT256_MAX)
