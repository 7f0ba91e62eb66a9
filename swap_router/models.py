from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class TradeType(str, Enum):
    EXACT_INPUT = "exact_input"
    EXACT_OUTPUT = "exact_output"


class Route(BaseModel):
    """Tokens in swap order; ``fees`` holds one tier per hop for tick pools"""
    tokens: List[str]
    fees: Optional[List[int]] = None


class TokenDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    symbol: str
    name: str
    decimals: int


class SwapStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount_in: int
    amount_out: int
    fee_in_token_in: int
    fee_in_token_out: int


class PoolSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    token0: TokenDescriptor
    token1: TokenDescriptor
    address: str
    fee: int  # hundredths of a bip
    tick_spacing: int


class TraderBalanceSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    sold_before: int
    sold_after: int
    bought_before: int
    bought_after: int


class TradeRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    trader: str
    usd_value: int
    exchange: str
    amount_sold: int
    token_sold: TokenDescriptor
    amount_bought: int
    token_bought: TokenDescriptor
    route: List[PoolSnapshot]
    balances: TraderBalanceSnapshot
    trade_type: TradeType
    fees: List[SwapStep] = Field(default_factory=list)
    fees_usd: List[int] = Field(default_factory=list)
