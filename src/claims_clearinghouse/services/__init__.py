"""Application services: use case orchestration."""

from claims_clearinghouse.services.admin_config import AdminConfig
from claims_clearinghouse.services.claim_service import ClaimService
from claims_clearinghouse.services.escrow_manager import EscrowManager
from claims_clearinghouse.services.event_notifier import EventNotifier

__all__ = ["AdminConfig", "ClaimService", "EscrowManager", "EventNotifier"]
