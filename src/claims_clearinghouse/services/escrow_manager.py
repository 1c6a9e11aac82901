"""Escrow Manager: moves stakes in and out of custody.

A pure ledger-movement primitive: it never reads or writes a claim's state.
The claim service decides what to move and calls in here only after the
transition has been validated and the new state has been written.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from claims_clearinghouse.domain.exceptions import (
    CustodyInvariantError,
    InsufficientAuthorizationError,
    InsufficientFundsError,
    InvalidAmountError,
    StakeMismatchError,
)
from claims_clearinghouse.logging_config import get_logger

if TYPE_CHECKING:
    from claims_clearinghouse.domain.collaborators import TokenLedger

logger = get_logger(__name__)


class EscrowManager:
    """Stakes and releases custody through a TokenLedger."""

    def __init__(self, ledger: TokenLedger) -> None:
        self._ledger = ledger

    async def ensure_covered(self, source: str, required: int) -> None:
        """Fail with StakeMismatchError unless `source` authorized at least `required`.

        Authorization above `required` is fine; only `required` is ever pulled.
        """
        authorized = await self._ledger.allowance(source)
        if authorized < required:
            raise StakeMismatchError(required, authorized)

    async def stake(self, source: str, amount: int) -> None:
        """Pull exactly `amount` from `source` into custody."""
        if amount < 0:
            raise InvalidAmountError(amount)

        authorized = await self._ledger.allowance(source)
        if authorized < amount:
            raise InsufficientAuthorizationError(source, amount, authorized)

        balance = await self._ledger.balance_of(source)
        if balance < amount:
            raise InsufficientFundsError(source, amount, balance)

        await self._ledger.transfer_to_custody(source, amount)
        logger.info("escrow.staked", source=source, amount=amount)

    async def release(self, destination: str, amount: int) -> None:
        """Push `amount` out of custody to `destination`.

        Custody always holds at least the sum of the recorded stakes, so a
        shortfall here means the accounting itself is broken.
        """
        if amount < 0:
            raise CustodyInvariantError(f"Negative release of {amount} to {destination}")
        if amount == 0:
            return

        try:
            await self._ledger.transfer_from_custody(destination, amount)
        except InsufficientFundsError as err:
            logger.error(
                "escrow.custody_shortfall",
                destination=destination,
                amount=amount,
                available=err.available,
            )
            raise CustodyInvariantError(
                f"Custody holds {err.available}, cannot release {amount} to {destination}"
            ) from err

        logger.info("escrow.released", destination=destination, amount=amount)

    async def custody_balance(self) -> int:
        return await self._ledger.balance_of(self._ledger.custody_address)
