"""Configuration-backed access control.

The administrator set and the owner are managed outside the claim core; this
implementation simply reflects what the deployment configured.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from claims_clearinghouse.domain.models import normalize_address

if TYPE_CHECKING:
    from collections.abc import Iterable

    from claims_clearinghouse.config import Settings


class StaticAccessControl:
    """AccessControl implementation over a fixed owner and administrator set."""

    def __init__(self, owner: str = "", administrators: Iterable[str] = ()) -> None:
        self._owner = normalize_address(owner) if owner else ""
        self._administrators = frozenset(normalize_address(a) for a in administrators)

    @classmethod
    def from_settings(cls, settings: Settings) -> StaticAccessControl:
        return cls(
            owner=settings.owner_address,
            administrators=settings.administrator_address_list,
        )

    def is_administrator(self, address: str) -> bool:
        return normalize_address(address) in self._administrators

    def owner(self) -> str:
        return self._owner

    def is_owner(self, address: str) -> bool:
        return bool(self._owner) and normalize_address(address) == self._owner
