"""Event Notifier: one structured notification per successful call.

Notifications are appended to the claim_events table through the caller's
session, so they commit or roll back together with the transition they
describe, and are mirrored to the structured log.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from claims_clearinghouse.domain.models import ClaimNotification
from claims_clearinghouse.logging_config import get_logger

if TYPE_CHECKING:
    from claims_clearinghouse.domain.enums import ClaimState
    from claims_clearinghouse.domain.models import Notification
    from claims_clearinghouse.infrastructure.database.orm_models import ClaimEvent
    from claims_clearinghouse.infrastructure.database.repositories import EventRepository

logger = get_logger(__name__)


class EventNotifier:
    """Records and logs notifications."""

    def __init__(self, event_repo: EventRepository) -> None:
        self._event_repo = event_repo

    async def emit(
        self,
        notification: Notification,
        actor: str,
        now: int,
        old_state: ClaimState | None = None,
        new_state: ClaimState | None = None,
    ) -> ClaimEvent:
        claim_idx = deal_id = None
        if isinstance(notification, ClaimNotification):
            claim_idx = notification.claim_idx
            deal_id = notification.deal_id

        evt = await self._event_repo.record(
            event_type=notification.event_type,
            actor=actor,
            created_at=now,
            claim_idx=claim_idx,
            deal_id=deal_id,
            old_state=old_state,
            new_state=new_state,
            payload=notification.to_dict(),
        )

        logger.info(
            "notification.emitted",
            event_type=notification.event_type.value,
            **notification.to_dict(),
        )
        return evt
