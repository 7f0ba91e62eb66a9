import logging
from decimal import Decimal, ROUND_DOWN
from typing import Optional, Tuple
import httpx
from swap_router.config import settings
from swap_router.errors import PriceFeedError

logger = logging.getLogger(__name__)

PRICE_DECIMALS = 8


class FixedPriceFeed:
    """
    Reports a constant price.

    This is what the accountant reads while a swap runs: live sources are
    awaited once beforehand and frozen into one of these.
    """

    def __init__(self, price: int, decimals: int = PRICE_DECIMALS):
        self.price = price
        self.decimals = decimals

    def latest_price(self) -> Tuple[int, int]:
        return self.price, self.decimals

    async def snapshot(self) -> "FixedPriceFeed":
        return self


class GeckoTerminalPriceFeed:
    """USD price of the wrapped native token from GeckoTerminal"""

    def __init__(
            self,
            token_address: str = settings.WRAPPED_NATIVE_ADDRESS,
            client: Optional[httpx.AsyncClient] = None
    ):
        self.token_address = token_address.lower()
        self.client = client or httpx.AsyncClient(
            base_url=settings.GECKOTERMINAL_API_URL,
            timeout=30.0,
            headers={
                "Accept": "application/json",
                "User-Agent": "SwapService/1.0"
            }
        )

    async def fetch_price(self) -> Tuple[int, int]:
        url = f"/simple/networks/{settings.CHAIN_ID}/token_price/{self.token_address}"
        logger.debug(f"Fetching native price from: {url}")

        response = await self.client.get(url)
        response.raise_for_status()
        data = response.json()

        prices = data.get("data", {}).get("attributes", {}).get("token_prices", {})
        raw_price = prices.get(self.token_address)
        if raw_price is None:
            raise PriceFeedError(f"No price returned for {self.token_address}")

        price = (Decimal(str(raw_price)) * 10 ** PRICE_DECIMALS).to_integral_value(rounding=ROUND_DOWN)
        return int(price), PRICE_DECIMALS

    async def snapshot(self) -> FixedPriceFeed:
        price, decimals = await self.fetch_price()
        return FixedPriceFeed(price, decimals)


def price_feed_from_settings():
    if settings.PRICE_FEED == "fixed":
        return FixedPriceFeed(settings.FIXED_NATIVE_PRICE)
    return GeckoTerminalPriceFeed()
