import logging
from enum import Enum
from typing import List, Optional
import httpx
import strawberry
from strawberry.types import Info
from swap_router.errors import LedgerError, PriceFeedError, SwapError
from swap_router.models import Route, TokenDescriptor, TradeRecord as TradeRecordModel

logger = logging.getLogger(__name__)


@strawberry.enum
class Protocol(Enum):
    RESERVE = "reserve"
    TICK = "tick"


@strawberry.type
class Token:
    """GraphQL Token type"""
    address: str
    symbol: str
    name: str
    decimals: int

    @classmethod
    def from_model(cls, token: TokenDescriptor) -> "Token":
        return cls(
            address=token.address,
            symbol=token.symbol,
            name=token.name,
            decimals=token.decimals
        )


@strawberry.type
class PoolSnapshot:
    address: str
    token0: Token
    token1: Token
    fee: int
    tick_spacing: int = strawberry.field(name="tickSpacing")


# uint256 amounts do not fit GraphQL Int, so they travel as decimal strings
@strawberry.type
class SwapStep:
    amount_in: str = strawberry.field(name="amountIn")
    amount_out: str = strawberry.field(name="amountOut")
    fee_in_token_in: str = strawberry.field(name="feeInTokenIn")
    fee_in_token_out: str = strawberry.field(name="feeInTokenOut")


@strawberry.type
class TraderBalances:
    sold_before: str = strawberry.field(name="soldBefore")
    sold_after: str = strawberry.field(name="soldAfter")
    bought_before: str = strawberry.field(name="boughtBefore")
    bought_after: str = strawberry.field(name="boughtAfter")


@strawberry.type
class TradeRecord:
    trader: str
    exchange: str
    trade_type: str = strawberry.field(name="tradeType")
    usd_value: str = strawberry.field(name="usdValue")
    amount_sold: str = strawberry.field(name="amountSold")
    token_sold: Token = strawberry.field(name="tokenSold")
    amount_bought: str = strawberry.field(name="amountBought")
    token_bought: Token = strawberry.field(name="tokenBought")
    route: List[PoolSnapshot]
    balances: TraderBalances
    fees: List[SwapStep]
    fees_usd: List[str] = strawberry.field(name="feesUsd")

    @classmethod
    def from_model(cls, record: TradeRecordModel) -> "TradeRecord":
        return cls(
            trader=record.trader,
            exchange=record.exchange,
            trade_type=record.trade_type.value,
            usd_value=str(record.usd_value),
            amount_sold=str(record.amount_sold),
            token_sold=Token.from_model(record.token_sold),
            amount_bought=str(record.amount_bought),
            token_bought=Token.from_model(record.token_bought),
            route=[
                PoolSnapshot(
                    address=pool.address,
                    token0=Token.from_model(pool.token0),
                    token1=Token.from_model(pool.token1),
                    fee=pool.fee,
                    tick_spacing=pool.tick_spacing
                )
                for pool in record.route
            ],
            balances=TraderBalances(
                sold_before=str(record.balances.sold_before),
                sold_after=str(record.balances.sold_after),
                bought_before=str(record.balances.bought_before),
                bought_after=str(record.balances.bought_after)
            ),
            fees=[
                SwapStep(
                    amount_in=str(step.amount_in),
                    amount_out=str(step.amount_out),
                    fee_in_token_in=str(step.fee_in_token_in),
                    fee_in_token_out=str(step.fee_in_token_out)
                )
                for step in record.fees
            ],
            fees_usd=[str(value) for value in record.fees_usd]
        )


@strawberry.type
class SwapResult:
    trade: Optional[TradeRecord] = None
    error: Optional[str] = None


def _engine(info: Info, protocol: Protocol):
    if protocol is Protocol.RESERVE:
        return info.context["reserve_engine"]
    return info.context["tick_engine"]


def _route(protocol: Protocol, tokens: List[str], fees: Optional[List[int]]) -> Route:
    return Route(tokens=tokens, fees=fees if protocol is Protocol.TICK else None)


async def _price_snapshot(info: Info, tokens: List[str]):
    """Await the live native price up front; swaps only read the frozen value"""
    if not info.context["accountant"].prices_native(tokens):
        return None
    return await info.context["price_source"].snapshot()


async def _record(info: Info, record: TradeRecordModel) -> SwapResult:
    trade_store = info.context["trade_store"]
    if not await trade_store.save_trade(record):
        logger.warning(f"Trade for {record.trader} executed but was not persisted")
    return SwapResult(trade=TradeRecord.from_model(record))


@strawberry.type
class Query:
    @strawberry.field
    async def pool_address(
            self,
            info: Info,
            protocol: Protocol,
            token_a: str,
            token_b: str,
            fee: Optional[int] = None
    ) -> Optional[str]:
        try:
            if protocol is Protocol.RESERVE:
                return info.context["reserve_locator"].pool_address(token_a, token_b)
            return info.context["tick_locator"].pool_address(token_a, token_b, fee)
        except (SwapError, ValueError) as e:
            logger.error(f"Error in pool_address: {str(e)}")
            return None

    @strawberry.field
    async def quote_exact_input(self, info: Info, tokens: List[str], amount_in: str) -> List[str]:
        try:
            amounts = info.context["reserve_engine"].quote_exact_input(Route(tokens=tokens), int(amount_in))
            return [str(amount) for amount in amounts]
        except (SwapError, LedgerError, ValueError) as e:
            logger.error(f"Error in quote_exact_input: {str(e)}")
            return []

    @strawberry.field
    async def quote_exact_output(self, info: Info, tokens: List[str], amount_out: str) -> List[str]:
        try:
            amounts = info.context["reserve_engine"].quote_exact_output(Route(tokens=tokens), int(amount_out))
            return [str(amount) for amount in amounts]
        except (SwapError, LedgerError, ValueError) as e:
            logger.error(f"Error in quote_exact_output: {str(e)}")
            return []

    @strawberry.field
    async def balance(self, info: Info, token: str, owner: str) -> Optional[str]:
        try:
            return str(info.context["ledger"].balance_of(token, owner))
        except (LedgerError, ValueError) as e:
            logger.error(f"Error in balance: {str(e)}")
            return None

    @strawberry.field
    async def recent_trades(self, info: Info, limit: int = 20) -> List[TradeRecord]:
        trade_store = info.context["trade_store"]
        trades = await trade_store.get_recent_trades(limit)
        return [TradeRecord.from_model(trade) for trade in trades]


@strawberry.type
class Mutation:
    @strawberry.mutation
    async def swap_exact_input(
            self,
            info: Info,
            protocol: Protocol,
            tokens: List[str],
            recipient: str,
            amount_in: str,
            amount_out_minimum: str,
            payer: str,
            fees: Optional[List[int]] = None
    ) -> SwapResult:
        try:
            price_feed = await _price_snapshot(info, tokens)
            with info.context["accountant"].priced_by(price_feed):
                record = _engine(info, protocol).swap_exact_input(
                    route=_route(protocol, tokens, fees),
                    recipient=recipient,
                    amount_in=int(amount_in),
                    amount_out_minimum=int(amount_out_minimum),
                    payer=payer
                )
        except (SwapError, LedgerError, PriceFeedError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Error in swap_exact_input: {type(e).__name__}: {str(e)}")
            return SwapResult(error=f"{type(e).__name__}: {str(e)}")
        return await _record(info, record)

    @strawberry.mutation
    async def swap_exact_output(
            self,
            info: Info,
            protocol: Protocol,
            tokens: List[str],
            recipient: str,
            amount_out: str,
            amount_in_maximum: str,
            payer: str,
            fees: Optional[List[int]] = None
    ) -> SwapResult:
        try:
            price_feed = await _price_snapshot(info, tokens)
            with info.context["accountant"].priced_by(price_feed):
                record = _engine(info, protocol).swap_exact_output(
                    route=_route(protocol, tokens, fees),
                    recipient=recipient,
                    amount_out=int(amount_out),
                    amount_in_maximum=int(amount_in_maximum),
                    payer=payer
                )
        except (SwapError, LedgerError, PriceFeedError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Error in swap_exact_output: {type(e).__name__}: {str(e)}")
            return SwapResult(error=f"{type(e).__name__}: {str(e)}")
        return await _record(info, record)


# Create the schema
schema = strawberry.Schema(query=Query, mutation=Mutation)
