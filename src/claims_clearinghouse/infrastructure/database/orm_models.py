"""SQLAlchemy 2.0 ORM models for the Claims Clearinghouse.

Five tables:
    1. claims            : One dispute record per claim, indexed from zero.
    2. claim_events      : Append-only log of every notification emitted.
    3. admin_parameters  : Mutable global parameters (the minimum stake).
    4. token_accounts    : Balances of the simulated token ledger.
    5. token_allowances  : Amounts each owner authorized custody to pull.

Design decisions:
    - Sequential integer claim ids assigned by the repository, starting at 0.
    - BigInteger token amounts in base units (no fractional amounts exist).
    - Ledger time is stored as integer unix seconds, as supplied per call.
    - CHECK constraints keep states and stakes valid at the database level.
    - claims and claim_events are append-only: no DELETE at the application level.
    - Generic column types only, so the same models run on PostgreSQL and SQLite.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from claims_clearinghouse.domain.enums import ClaimState

_STATE_VALUES = ", ".join(f"'{state.value}'" for state in ClaimState)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# 1. claims
# ---------------------------------------------------------------------------
class Claim(Base):
    """A dispute between a requester and a respondent over one deal."""

    __tablename__ = "claims"

    # --- Primary Key ---
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False,
        comment="Sequential claim index, starting at zero",
    )

    # --- Lifecycle ---
    state: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        comment="Current lifecycle state (guarded by ClaimStateMachine)",
    )
    modified: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Ledger time (unix seconds) of the last transition",
    )

    # --- Deal ---
    deal_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Opaque identifier of the underlying deal",
    )
    reason_note: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # --- Requester ---
    requester_id: Mapped[str] = mapped_column(
        String(66),
        nullable=False,
        comment="Application-level identity of the requester",
    )
    requester_address: Mapped[str] = mapped_column(String(42), nullable=False)
    requester_staked: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # --- Respondent ---
    respondent_id: Mapped[str] = mapped_column(
        String(66),
        nullable=False,
        comment="Application-level identity of the respondent",
    )
    respondent_address: Mapped[str | None] = mapped_column(
        String(42),
        nullable=True,
        default=None,
        comment="Set when the respondent accepts",
    )
    respondent_staked: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    resolution_note: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        CheckConstraint(f"state IN ({_STATE_VALUES})", name="ck_claim_valid_state"),
        CheckConstraint("requester_staked >= 0", name="ck_claim_requester_stake"),
        CheckConstraint("respondent_staked >= 0", name="ck_claim_respondent_stake"),
        Index("idx_claim_state", "state"),
        Index("idx_claim_deal", "deal_id"),
        Index("idx_claim_requester", "requester_address"),
    )

    def __repr__(self) -> str:
        return (
            f"<Claim id={self.id} state={self.state} "
            f"staked={self.requester_staked}/{self.respondent_staked}>"
        )


# ---------------------------------------------------------------------------
# 2. claim_events (Append-Only Notification Log)
# ---------------------------------------------------------------------------
class ClaimEvent(Base):
    """Immutable record of one emitted notification.

    Written in the same transaction as the transition it describes, so a
    rolled-back call leaves no event behind.
    """

    __tablename__ = "claim_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(
        String(48),
        nullable=False,
        comment="EventType enum value (e.g., ClaimCreated, MinStakeUpdated)",
    )
    claim_idx: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    deal_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True, default=None)
    old_state: Mapped[str | None] = mapped_column(String(40), nullable=True, default=None)
    new_state: Mapped[str | None] = mapped_column(String(40), nullable=True, default=None)
    actor: Mapped[str] = mapped_column(
        String(42),
        nullable=False,
        comment="Address that made the call",
    )
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Ledger time of the call",
    )

    __table_args__ = (
        Index("idx_event_claim", "claim_idx"),
        Index("idx_event_type", "event_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<ClaimEvent id={self.id} type={self.event_type} "
            f"claim={self.claim_idx} {self.old_state}->{self.new_state}>"
        )


# ---------------------------------------------------------------------------
# 3. admin_parameters
# ---------------------------------------------------------------------------
class AdminParameter(Base):
    """A named integer parameter set by an administrator."""

    __tablename__ = "admin_parameters"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(42), nullable=True, default=None)
    updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True, default=None)


# ---------------------------------------------------------------------------
# 4. token_accounts / 5. token_allowances (simulated token ledger)
# ---------------------------------------------------------------------------
class TokenAccount(Base):
    """Token balance of one address."""

    __tablename__ = "token_accounts"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (CheckConstraint("balance >= 0", name="ck_token_balance"),)

    def __repr__(self) -> str:
        return f"<TokenAccount {self.address} balance={self.balance}>"


class TokenAllowance(Base):
    """Amount `owner` has authorized `spender` to pull."""

    __tablename__ = "token_allowances"

    owner: Mapped[str] = mapped_column(String(42), primary_key=True)
    spender: Mapped[str] = mapped_column(String(42), primary_key=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (CheckConstraint("amount >= 0", name="ck_token_allowance"),)
