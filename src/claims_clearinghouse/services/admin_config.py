"""Admin Config: the global minimum stake.

Only administrators may change it. A change applies to claims created
afterwards; stakes already in custody are never touched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from claims_clearinghouse.domain.exceptions import InvalidAmountError, UnauthorizedError
from claims_clearinghouse.domain.models import MinStakeUpdated, parse_address
from claims_clearinghouse.logging_config import get_logger

if TYPE_CHECKING:
    from claims_clearinghouse.domain.collaborators import AccessControl
    from claims_clearinghouse.infrastructure.database.repositories import ParameterRepository
    from claims_clearinghouse.services.event_notifier import EventNotifier

logger = get_logger(__name__)

MIN_STAKE = "min_stake"


class AdminConfig:
    """Reads and updates the minimum stake threshold."""

    def __init__(
        self,
        parameters: ParameterRepository,
        access_control: AccessControl,
        notifier: EventNotifier,
        default_min_stake: int,
    ) -> None:
        self._parameters = parameters
        self._access_control = access_control
        self._notifier = notifier
        self._default_min_stake = default_min_stake

    async def get_minimum_stake(self) -> int:
        value = await self._parameters.get(MIN_STAKE)
        return self._default_min_stake if value is None else value

    async def set_minimum_stake(self, caller: str, new_value: int, now: int) -> MinStakeUpdated:
        """Replace the minimum stake. Administrator only."""
        caller = parse_address(caller)
        if not self._access_control.is_administrator(caller):
            raise UnauthorizedError(caller, "set the minimum stake")
        if new_value < 0:
            raise InvalidAmountError(new_value)

        previous = await self.get_minimum_stake()
        await self._parameters.set(MIN_STAKE, new_value, updated_by=caller, updated_at=now)

        notification = MinStakeUpdated(previous=previous, new=new_value)
        await self._notifier.emit(notification, actor=caller, now=now)

        logger.info("admin.min_stake_updated", previous=previous, new=new_value, by=caller)
        return notification
