import pytest
from swap_router.config import settings
from swap_router.services.accountant import TradeAccountant
from swap_router.services.amm_math import Q96
from swap_router.services.ledger import Ledger
from swap_router.services.pool_locator import PoolLocator
from swap_router.services.pools import ReservePool, TickPool
from swap_router.services.price_feed import FixedPriceFeed
from swap_router.services.reserve_engine import ReserveSwapEngine
from swap_router.services.tick_engine import TickSwapEngine
from tests.helpers import (
    NATIVE_PRICE,
    ROUTER,
    TAX_TOKEN,
    TOKEN_A,
    TOKEN_B,
    TOKEN_C,
    USDC,
    WETH,
)


@pytest.fixture
def ledger():
    ledger = Ledger()
    ledger.register_token(TOKEN_A, "AAA", "Token A")
    ledger.register_token(TOKEN_B, "BBB", "Token B")
    ledger.register_token(TOKEN_C, "CCC", "Token C")
    ledger.register_token(TAX_TOKEN, "TAX", "Taxed Token", transfer_fee_bps=100)
    ledger.register_token(USDC, "USDC", "USD Coin", decimals=6)
    ledger.register_token(WETH, "WETH", "Wrapped Ether")
    return ledger


@pytest.fixture
def reserve_locator():
    return PoolLocator.reserve_pools(settings)


@pytest.fixture
def tick_locator():
    return PoolLocator.tick_pools(settings)


@pytest.fixture
def price_feed():
    return FixedPriceFeed(NATIVE_PRICE)


@pytest.fixture
def accountant(ledger, price_feed):
    return TradeAccountant(ledger, price_feed, usd_tokens=[USDC], wrapped_native=WETH)


@pytest.fixture
def make_reserve_pool(ledger, reserve_locator):
    def make(token_a, token_b, amount_a, amount_b):
        address = reserve_locator.pool_address(token_a, token_b)
        pool = ReservePool(ledger, address, token_a, token_b)
        ledger.mint(token_a, address, amount_a)
        ledger.mint(token_b, address, amount_b)
        pool.sync()
        ledger.add_pool(pool)
        return pool

    return make


@pytest.fixture
def make_tick_pool(ledger, tick_locator):
    def make(token_a, token_b, fee=3000, sqrt_price_x96=Q96, liquidity=10 ** 6, funding=10 ** 8):
        address = tick_locator.pool_address(token_a, token_b, fee)
        pool = TickPool(ledger, address, token_a, token_b, fee, sqrt_price_x96, liquidity)
        ledger.mint(token_a, address, funding)
        ledger.mint(token_b, address, funding)
        ledger.add_pool(pool)
        return pool

    return make


@pytest.fixture
def reserve_engine(ledger, reserve_locator, accountant):
    return ReserveSwapEngine(ledger, reserve_locator, accountant, address=ROUTER)


@pytest.fixture
def tick_engine(ledger, tick_locator, accountant):
    return TickSwapEngine(ledger, tick_locator, accountant, address=ROUTER)


@pytest.fixture
def fund(ledger):
    """Give an account tokens and let the router spend them"""
    def fund(token, owner, amount):
        ledger.mint(token, owner, amount)
        ledger.approve(token, owner, ROUTER, ledger.allowance(token, owner, ROUTER) + amount)

    return fund
