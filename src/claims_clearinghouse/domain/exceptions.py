"""Domain exceptions for the Claims Clearinghouse.

These exceptions are framework-agnostic and represent business rule violations.
They are caught and translated to HTTP responses by the API layer's middleware.
Every one of them aborts the call that raised it: the surrounding transaction
is rolled back and no notification is recorded.
"""


class ClearinghouseError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "CLEARINGHOUSE_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Transition Errors ---


class UnauthorizedError(ClearinghouseError):
    """Raised when the caller does not hold the role an action requires."""

    def __init__(self, caller: str, action: str) -> None:
        super().__init__(
            message=f"Caller {caller} is not authorized to {action}",
            code="UNAUTHORIZED",
        )
        self.caller = caller
        self.action = action


class InvalidStateError(ClearinghouseError):
    """Raised when an action is not defined from the claim's current state.

    Example: resolve on a claim still AWAITING_ACCEPTANCE.
    """

    def __init__(self, current_state: str, action: str) -> None:
        super().__init__(
            message=f"Action '{action}' is not allowed from state {current_state}",
            code="INVALID_STATE",
        )
        self.current_state = current_state
        self.action = action


class TooEarlyError(ClearinghouseError):
    """Raised when a timing gate has not elapsed yet."""

    def __init__(self, claim_idx: int, available_at: int) -> None:
        super().__init__(
            message=f"Claim {claim_idx} cannot be closed before {available_at}",
            code="TOO_EARLY",
        )
        self.claim_idx = claim_idx
        self.available_at = available_at


# --- Claim Errors ---


class ClaimNotFoundError(ClearinghouseError):
    """Raised when a claim index is out of range."""

    def __init__(self, claim_idx: int) -> None:
        super().__init__(
            message=f"Claim not found: {claim_idx}",
            code="CLAIM_NOT_FOUND",
        )
        self.claim_idx = claim_idx


class InvalidAmountError(ClearinghouseError):
    """Raised when an amount is negative."""

    def __init__(self, amount: int) -> None:
        super().__init__(
            message=f"Amount must not be negative: {amount}",
            code="INVALID_AMOUNT",
        )
        self.amount = amount


class InvalidAddressError(ClearinghouseError):
    """Raised when a party address is not 0x followed by 40 hex digits."""

    def __init__(self, address: str) -> None:
        super().__init__(
            message=f"Not a valid address: {address!r}",
            code="INVALID_ADDRESS",
        )
        self.address = address


# --- Stake Errors ---


class StakeMismatchError(ClearinghouseError):
    """Raised when the respondent's authorization does not cover the requester's stake."""

    def __init__(self, required: int, authorized: int) -> None:
        super().__init__(
            message=f"Stake mismatch: required {required}, authorized {authorized}",
            code="STAKE_MISMATCH",
        )
        self.required = required
        self.authorized = authorized


class StakeBelowMinimumError(ClearinghouseError):
    """Raised when a claim is opened with less than the minimum stake."""

    def __init__(self, amount: int, minimum: int) -> None:
        super().__init__(
            message=f"Stake {amount} is below the minimum stake {minimum}",
            code="STAKE_BELOW_MINIMUM",
        )
        self.amount = amount
        self.minimum = minimum


# --- Custody Errors ---


class CustodyError(ClearinghouseError):
    """Raised when a custody transfer cannot be carried out."""

    def __init__(self, message: str, code: str = "CUSTODY_ERROR") -> None:
        super().__init__(message=message, code=code)


class InsufficientFundsError(CustodyError):
    """Raised when a party's token balance cannot fund a transfer."""

    def __init__(self, address: str, required: int, available: int) -> None:
        super().__init__(
            message=(
                f"Insufficient funds for {address}: "
                f"required {required}, available {available}"
            ),
            code="INSUFFICIENT_FUNDS",
        )
        self.address = address
        self.required = required
        self.available = available


class InsufficientAuthorizationError(CustodyError):
    """Raised when a party has not authorized custody to pull the amount."""

    def __init__(self, address: str, required: int, authorized: int) -> None:
        super().__init__(
            message=(
                f"Insufficient authorization for {address}: "
                f"required {required}, authorized {authorized}"
            ),
            code="INSUFFICIENT_AUTHORIZATION",
        )
        self.address = address
        self.required = required
        self.authorized = authorized


class CustodyInvariantError(CustodyError):
    """Raised when custody holds less than the stakes recorded against it."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="CUSTODY_INVARIANT_VIOLATION")
