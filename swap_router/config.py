import logging
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

# Network identifiers for GeckoTerminal API
NETWORK_IDS = {
    'ethereum': 'eth',
    'binance': 'bsc',
    'polygon': 'polygon',
    'avalanche': 'avalanche',
    'fantom': 'fantom',
    'arbitrum': 'arbitrum',
    'optimism': 'optimism'
}

# Mainnet tokens used as the default USD allowlist
USDC_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
USDT_ADDRESS = "0xdAC17F958D2ee523a2206206994597C13D831ec7"
DAI_ADDRESS = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
WETH_ADDRESS = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_empty=True, extra="ignore"
    )
    GECKOTERMINAL_API_URL: str = "https://api.geckoterminal.com/api/v2"
    REDIS_URL: str = "redis://localhost:6379"
    CHAIN_ID: str = NETWORK_IDS['ethereum']  # Can change to "polygon", etc.
    LOG_LEVEL: str = "INFO"

    # Address the engines act under (payer of intermediate legs)
    ROUTER_ADDRESS: str = "0x3fC91A3afd70395Cd496C647d5a6CC9D4B2b7FAD"

    # Reserve-based protocol deployment
    V2_FACTORY_ADDRESS: str = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"
    V2_INIT_CODE_HASH: str = "0x96e8ac4277198ff8b6f785478aa9a39f403cb768dd02cbee326c3e7da348845f"
    V2_EXCHANGE_TAG: str = "uniswap_v2"

    # Tick-based protocol deployment
    V3_FACTORY_ADDRESS: str = "0x1F98431c8aD98523631AE4a59f267346ea31F984"
    V3_INIT_CODE_HASH: str = "0xe34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54"
    V3_EXCHANGE_TAG: str = "uniswap_v3"

    # USD valuation
    WRAPPED_NATIVE_ADDRESS: str = WETH_ADDRESS
    USD_TOKEN_ADDRESSES: List[str] = [USDC_ADDRESS, USDT_ADDRESS, DAI_ADDRESS]
    PRICE_FEED: str = "geckoterminal"  # or "fixed"
    FIXED_NATIVE_PRICE: int = 0  # 8 decimals, used when PRICE_FEED == "fixed"

    SANDBOX_STATE_PATH: str = "sandbox_state.json"
    TRADES_KEY: str = "trades"
    TRADES_HISTORY_LIMIT: int = 1000


settings = Settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
