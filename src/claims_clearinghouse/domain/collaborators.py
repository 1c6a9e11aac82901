"""External collaborator protocols.

Defines the interfaces of the two systems the claim core consumes but does
not own: the token ledger that moves stakes in and out of custody, and the
access-control registry that knows who the administrators are.

These are Protocols (structural subtyping) so concrete implementations don't
need to inherit from a base class; they just need to match the shape.
The domain layer has ZERO imports from SQLAlchemy or any external service.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenLedger(Protocol):
    """Fungible-token ledger holding the custody balance.

    Concrete implementations:
        - infrastructure/ledger.py (DatabaseTokenLedger, simulated token)
    """

    @property
    def custody_address(self) -> str:
        """Address whose balance is the clearinghouse custody."""
        ...

    async def balance_of(self, address: str) -> int:
        """Return the token balance of `address`."""
        ...

    async def allowance(self, owner: str) -> int:
        """Return how much `owner` has authorized custody to pull."""
        ...

    async def transfer_to_custody(self, source: str, amount: int) -> None:
        """Pull `amount` from `source` into custody.

        Raises:
            InsufficientAuthorizationError: `source` authorized less than `amount`.
            InsufficientFundsError: `source` holds less than `amount`.
        """
        ...

    async def transfer_from_custody(self, destination: str, amount: int) -> None:
        """Push `amount` out of custody to `destination`.

        Raises:
            InsufficientFundsError: custody holds less than `amount`.
        """
        ...


@runtime_checkable
class AccessControl(Protocol):
    """Administrator/owner registry, managed outside the claim core.

    Concrete implementations:
        - infrastructure/access_control.py (StaticAccessControl)
    """

    def is_administrator(self, address: str) -> bool:
        ...

    def owner(self) -> str:
        ...

    def is_owner(self, address: str) -> bool:
        ...
