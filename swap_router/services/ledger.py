import copy
import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Tuple
from eth_utils import to_checksum_address
from swap_router.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    PoolNotFound,
    UnknownToken,
)
from swap_router.models import TokenDescriptor, TradeRecord

logger = logging.getLogger(__name__)


class Ledger:
    """
    In-memory host for tokens, pools and emitted trade records.

    Calls made inside ``atomic()`` are all-or-nothing: any exception restores
    balances, allowances, pool state and the event log to their state at
    entry.
    """

    def __init__(self):
        self._tokens: Dict[str, TokenDescriptor] = {}
        self._transfer_fee_bps: Dict[str, int] = {}
        self._balances: Dict[str, Dict[str, int]] = {}
        self._allowances: Dict[Tuple[str, str, str], int] = {}
        self._native: Dict[str, int] = {}
        self._pools: Dict[str, object] = {}
        self.events: List[TradeRecord] = []

    def register_token(
            self,
            address: str,
            symbol: str,
            name: str,
            decimals: int = 18,
            transfer_fee_bps: int = 0
    ) -> TokenDescriptor:
        address = to_checksum_address(address)
        token = TokenDescriptor(address=address, symbol=symbol, name=name, decimals=decimals)
        self._tokens[address] = token
        self._transfer_fee_bps[address] = transfer_fee_bps
        self._balances.setdefault(address, {})
        return token

    def describe(self, token: str) -> TokenDescriptor:
        token = to_checksum_address(token)
        if token not in self._tokens:
            raise UnknownToken(token)
        return self._tokens[token]

    def _holders(self, token: str) -> Dict[str, int]:
        token = to_checksum_address(token)
        if token not in self._balances:
            raise UnknownToken(token)
        return self._balances[token]

    def balance_of(self, token: str, owner: str) -> int:
        return self._holders(token).get(to_checksum_address(owner), 0)

    def native_balance_of(self, owner: str) -> int:
        return self._native.get(to_checksum_address(owner), 0)

    def set_native_balance(self, owner: str, amount: int) -> None:
        self._native[to_checksum_address(owner)] = amount

    def mint(self, token: str, owner: str, amount: int) -> None:
        holders = self._holders(token)
        owner = to_checksum_address(owner)
        holders[owner] = holders.get(owner, 0) + amount

    def approve(self, token: str, owner: str, spender: str, amount: int) -> None:
        key = (to_checksum_address(token), to_checksum_address(owner), to_checksum_address(spender))
        self._allowances[key] = amount

    def allowance(self, token: str, owner: str, spender: str) -> int:
        key = (to_checksum_address(token), to_checksum_address(owner), to_checksum_address(spender))
        return self._allowances.get(key, 0)

    def transfer(self, token: str, sender: str, recipient: str, amount: int) -> int:
        """Move ``amount`` and return what the recipient actually received"""
        holders = self._holders(token)
        sender = to_checksum_address(sender)
        recipient = to_checksum_address(recipient)
        balance = holders.get(sender, 0)
        if amount < 0 or balance < amount:
            raise InsufficientBalance(f"{sender} holds {balance} of {token}, needs {amount}")

        # fee-on-transfer tokens burn part of every transfer
        received = amount - amount * self._transfer_fee_bps.get(to_checksum_address(token), 0) // 10_000
        holders[sender] = balance - amount
        holders[recipient] = holders.get(recipient, 0) + received
        return received

    def transfer_from(self, token: str, owner: str, spender: str, recipient: str, amount: int) -> int:
        allowed = self.allowance(token, owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(f"{spender} may move {allowed} of {owner}'s {token}, needs {amount}")
        self.approve(token, owner, spender, allowed - amount)
        return self.transfer(token, owner, recipient, amount)

    def add_pool(self, pool) -> None:
        self._pools[to_checksum_address(pool.address)] = pool

    def find_pool(self, address: str):
        return self._pools.get(to_checksum_address(address))

    def pool(self, address: str):
        pool = self.find_pool(address)
        if pool is None:
            raise PoolNotFound(address)
        return pool

    def emit(self, record: TradeRecord) -> None:
        self.events.append(record)

    @contextmanager
    def atomic(self) -> Iterator["Ledger"]:
        balances = copy.deepcopy(self._balances)
        allowances = dict(self._allowances)
        native = dict(self._native)
        pool_states = {address: pool.save_state() for address, pool in self._pools.items()}
        events = len(self.events)
        try:
            yield self
        except Exception:
            logger.debug("Rolling back ledger to state at call entry")
            self._balances = balances
            self._allowances = allowances
            self._native = native
            for address, state in pool_states.items():
                self._pools[address].restore_state(state)
            del self.events[events:]
            raise
