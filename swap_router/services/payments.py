import logging
from eth_utils import to_checksum_address

logger = logging.getLogger(__name__)


class Payments:
    """Moves tokens on behalf of an engine"""

    def __init__(self, ledger, engine_address: str):
        self.ledger = ledger
        self.engine_address = to_checksum_address(engine_address)

    def pay(self, token: str, payer: str, recipient: str, amount: int) -> int:
        """
        Transfer ``amount`` of ``token`` from ``payer`` to ``recipient``.

        The engine pays from its own balance directly; any other payer must
        have granted the engine an allowance. Returns the amount the
        recipient actually received, which is lower for fee-on-transfer
        tokens.
        """
        if to_checksum_address(payer) == self.engine_address:
            received = self.ledger.transfer(token, payer, recipient, amount)
        else:
            received = self.ledger.transfer_from(token, payer, self.engine_address, recipient, amount)
        logger.debug(f"Paid {amount} of {token} from {payer} to {recipient} ({received} received)")
        return received

    def balance(self, token: str) -> int:
        return self.ledger.balance_of(token, self.engine_address)
