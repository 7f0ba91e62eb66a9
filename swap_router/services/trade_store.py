import asyncio
import logging
from typing import List, Optional
import redis.asyncio as redis
from swap_router.models import TradeRecord
from swap_router.config import settings

logger = logging.getLogger(__name__)


class TradeStore:
    def __init__(self, key: str = settings.TRADES_KEY, history_limit: int = settings.TRADES_HISTORY_LIMIT):
        """Initialize TradeStore without connecting to Redis"""
        self.redis: Optional[redis.Redis] = None
        self.key = key
        self.history_limit = history_limit
        self._ready = asyncio.Event()

    async def initialize(self):
        """Initialize Redis connection"""
        try:
            logger.info("Initializing Redis connection")
            self.redis = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True
            )

            # Test connection
            await self.redis.ping()
            self._ready.set()
            logger.info("Redis connection established successfully")
        except Exception as e:
            logger.error(f"Error initializing Redis connection: {str(e)}")
            raise

    async def _ensure_connection(self):
        """Ensure Redis connection is established"""
        if not self._ready.is_set():
            await self.initialize()
        if self.redis is None:
            raise Exception("Redis connection not initialized")

    async def save_trade(self, record: TradeRecord) -> bool:
        """Push a trade record onto the capped history list"""
        await self._ensure_connection()
        try:
            await self.redis.lpush(self.key, record.model_dump_json())
            await self.redis.ltrim(self.key, 0, self.history_limit - 1)
            return True
        except Exception as e:
            logger.error(f"Error saving trade for {record.trader}: {str(e)}")
            return False

    async def get_recent_trades(self, limit: int = 20) -> List[TradeRecord]:
        """Most recent trades first"""
        await self._ensure_connection()
        try:
            raw_trades = await self.redis.lrange(self.key, 0, limit - 1)
            trades: List[TradeRecord] = []

            for raw in raw_trades:
                try:
                    trades.append(TradeRecord.model_validate_json(raw))
                except Exception as e:
                    logger.error(f"Error parsing trade data: {str(e)}")
                    continue

            return trades
        except Exception as e:
            logger.error(f"Error getting recent trades: {str(e)}")
            return []
