from contextlib import asynccontextmanager
from typing import Any, Dict
from fastapi import FastAPI
from strawberry.fastapi import GraphQLRouter
from swap_router.config import settings
from swap_router.schema import schema
from swap_router.services.accountant import TradeAccountant
from swap_router.services.ledger import Ledger
from swap_router.services.pool_locator import PoolLocator
from swap_router.services.price_feed import price_feed_from_settings
from swap_router.services.reserve_engine import ReserveSwapEngine
from swap_router.services.state_loader import SandboxLoader
from swap_router.services.tick_engine import TickSwapEngine
from swap_router.services.trade_store import TradeStore

# Initialize services
reserve_locator = PoolLocator.reserve_pools(settings)
tick_locator = PoolLocator.tick_pools(settings)
trade_store = TradeStore()
price_source = price_feed_from_settings()
ledger = Ledger()
# swaps are priced from a snapshot of price_source taken by each mutation
accountant = TradeAccountant(
    ledger,
    None,
    usd_tokens=settings.USD_TOKEN_ADDRESSES,
    wrapped_native=settings.WRAPPED_NATIVE_ADDRESS
)
reserve_engine = ReserveSwapEngine(ledger, reserve_locator, accountant)
tick_engine = TickSwapEngine(ledger, tick_locator, accountant)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        # Initialize TradeStore first
        await trade_store.initialize()

        SandboxLoader(reserve_locator, tick_locator).load_file(settings.SANDBOX_STATE_PATH, ledger)
        print("Sandbox ledger loaded successfully")
        yield
    except Exception as e:
        print(f"Error during startup: {str(e)}")
        raise
    finally:
        print("Shutting down swap router")


# Create context for GraphQL
async def get_context() -> Dict[str, Any]:
    return {
        "ledger": ledger,
        "accountant": accountant,
        "price_source": price_source,
        "reserve_locator": reserve_locator,
        "tick_locator": tick_locator,
        "reserve_engine": reserve_engine,
        "tick_engine": tick_engine,
        "trade_store": trade_store
    }


# Create FastAPI app
app = FastAPI(lifespan=lifespan)

# Add GraphQL route with context
graphql_app = GraphQLRouter(
    schema,
    context_getter=get_context,
)
app.include_router(graphql_app, prefix="/graphql")

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
