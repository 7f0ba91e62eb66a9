import json
import logging
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field
from swap_router.services.ledger import Ledger
from swap_router.services.pools import ReservePool, TickPool

logger = logging.getLogger(__name__)


class TokenState(BaseModel):
    address: str
    symbol: str
    name: str
    decimals: int = 18
    transfer_fee_bps: int = 0


class BalanceState(BaseModel):
    token: str
    owner: str
    amount: int


class NativeBalanceState(BaseModel):
    owner: str
    amount: int


class AllowanceState(BaseModel):
    token: str
    owner: str
    spender: str
    amount: int


class ReservePoolState(BaseModel):
    token_a: str
    token_b: str
    amount_a: int
    amount_b: int


class TickPoolState(BaseModel):
    token_a: str
    token_b: str
    fee: int
    sqrt_price_x96: int
    liquidity: int
    amount_a: int
    amount_b: int


class SandboxState(BaseModel):
    tokens: List[TokenState] = Field(default_factory=list)
    balances: List[BalanceState] = Field(default_factory=list)
    native_balances: List[NativeBalanceState] = Field(default_factory=list)
    allowances: List[AllowanceState] = Field(default_factory=list)
    reserve_pools: List[ReservePoolState] = Field(default_factory=list)
    tick_pools: List[TickPoolState] = Field(default_factory=list)


class SandboxLoader:
    """Seeds a ledger with already-deployed pools at their derived addresses"""

    def __init__(self, reserve_locator, tick_locator):
        self.reserve_locator = reserve_locator
        self.tick_locator = tick_locator

    def load_file(self, path: str, ledger: Optional[Ledger] = None) -> Ledger:
        state_path = Path(path)
        if not state_path.exists():
            logger.warning(f"Sandbox state {state_path} not found, starting with an empty ledger")
            return ledger or Ledger()
        return self.load(SandboxState.model_validate(json.loads(state_path.read_text())), ledger)

    def load(self, state: SandboxState, ledger: Optional[Ledger] = None) -> Ledger:
        ledger = ledger or Ledger()

        for token in state.tokens:
            ledger.register_token(token.address, token.symbol, token.name, token.decimals, token.transfer_fee_bps)
        for balance in state.balances:
            ledger.mint(balance.token, balance.owner, balance.amount)
        for native in state.native_balances:
            ledger.set_native_balance(native.owner, native.amount)
        for allowance in state.allowances:
            ledger.approve(allowance.token, allowance.owner, allowance.spender, allowance.amount)

        for pool_state in state.reserve_pools:
            address = self.reserve_locator.pool_address(pool_state.token_a, pool_state.token_b)
            pool = ReservePool(ledger, address, pool_state.token_a, pool_state.token_b)
            ledger.mint(pool_state.token_a, address, pool_state.amount_a)
            ledger.mint(pool_state.token_b, address, pool_state.amount_b)
            pool.sync()
            ledger.add_pool(pool)

        for pool_state in state.tick_pools:
            address = self.tick_locator.pool_address(pool_state.token_a, pool_state.token_b, pool_state.fee)
            pool = TickPool(
                ledger,
                address,
                pool_state.token_a,
                pool_state.token_b,
                pool_state.fee,
                pool_state.sqrt_price_x96,
                pool_state.liquidity
            )
            ledger.mint(pool_state.token_a, address, pool_state.amount_a)
            ledger.mint(pool_state.token_b, address, pool_state.amount_b)
            ledger.add_pool(pool)

        logger.info(
            f"Loaded sandbox with {len(state.tokens)} tokens, {len(state.reserve_pools)} reserve pools "
            f"and {len(state.tick_pools)} tick pools"
        )
        return ledger
