from swap_router.config import USDC_ADDRESS, WETH_ADDRESS
from swap_router.services.amm_math import MAX_SQRT_RATIO, MIN_SQRT_RATIO, compute_swap_step

TOKEN_A = "0x1000000000000000000000000000000000000001"
TOKEN_B = "0x2000000000000000000000000000000000000002"
TOKEN_C = "0x3000000000000000000000000000000000000003"
TAX_TOKEN = "0x4000000000000000000000000000000000000004"
USDC = USDC_ADDRESS
WETH = WETH_ADDRESS

TRADER = "0x7000000000000000000000000000000000000007"
RECIPIENT = "0x8000000000000000000000000000000000000008"
ROUTER = "0x9000000000000000000000000000000000000009"
STRANGER = "0x6000000000000000000000000000000000000006"

NATIVE_PRICE = 3000 * 10 ** 8


def tick_swap(sqrt_price, liquidity, amount_specified, fee, zero_for_one):
    """What a single-range tick pool does for a swap pushed to the price limit"""
    target = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1
    return compute_swap_step(sqrt_price, target, liquidity, amount_specified, fee)
