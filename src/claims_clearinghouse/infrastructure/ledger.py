"""Simulated token ledger backed by the claims database.

Stands in for the external fungible token: balances and allowances live in
the token_accounts / token_allowances tables and are mutated through the same
AsyncSession as the claims, so a rolled-back call rolls its transfers back
too. Production deployments plug a real ledger behind the TokenLedger
protocol instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from claims_clearinghouse.domain.exceptions import (
    InsufficientAuthorizationError,
    InsufficientFundsError,
    InvalidAmountError,
)
from claims_clearinghouse.domain.models import normalize_address
from claims_clearinghouse.infrastructure.database.repositories import TokenRepository
from claims_clearinghouse.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def _check_amount(amount: int) -> None:
    if amount < 0:
        raise InvalidAmountError(amount)


class DatabaseTokenLedger:
    """TokenLedger implementation over the token tables."""

    def __init__(self, session: AsyncSession, custody_address: str) -> None:
        self._tokens = TokenRepository(session)
        self._custody = normalize_address(custody_address)

    @property
    def custody_address(self) -> str:
        return self._custody

    async def balance_of(self, address: str) -> int:
        account = await self._tokens.find_account(normalize_address(address))
        return account.balance if account is not None else 0

    async def allowance(self, owner: str) -> int:
        allowance = await self._tokens.find_allowance(normalize_address(owner), self._custody)
        return allowance.amount if allowance is not None else 0

    async def approve(self, owner: str, amount: int) -> None:
        """Authorize custody to pull up to `amount` from `owner` (replaces, not adds)."""
        _check_amount(amount)
        allowance = await self._tokens.get_allowance(normalize_address(owner), self._custody)
        allowance.amount = amount
        await self._tokens.flush()
        logger.info("ledger.approved", owner=allowance.owner, amount=amount)

    async def mint(self, to: str, amount: int) -> None:
        """Credit `amount` new tokens to `to`."""
        _check_amount(amount)
        account = await self._tokens.get_account(normalize_address(to))
        account.balance += amount
        await self._tokens.flush()
        logger.info("ledger.minted", to=account.address, amount=amount)

    async def transfer_to_custody(self, source: str, amount: int) -> None:
        _check_amount(amount)
        source = normalize_address(source)

        allowance = await self._tokens.get_allowance(source, self._custody)
        if allowance.amount < amount:
            raise InsufficientAuthorizationError(source, amount, allowance.amount)

        account = await self._tokens.get_account(source)
        if account.balance < amount:
            raise InsufficientFundsError(source, amount, account.balance)

        custody = await self._tokens.get_account(self._custody)
        allowance.amount -= amount
        account.balance -= amount
        custody.balance += amount
        await self._tokens.flush()
        logger.debug("ledger.pulled", source=source, amount=amount)

    async def transfer_from_custody(self, destination: str, amount: int) -> None:
        _check_amount(amount)
        destination = normalize_address(destination)

        custody = await self._tokens.get_account(self._custody)
        if custody.balance < amount:
            raise InsufficientFundsError(self._custody, amount, custody.balance)

        account = await self._tokens.get_account(destination)
        custody.balance -= amount
        account.balance += amount
        await self._tokens.flush()
        logger.debug("ledger.pushed", destination=destination, amount=amount)
