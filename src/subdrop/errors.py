"""
subdrop/errors.py

Exception taxonomy for subdrop.

Every error aborts the enclosing call; the engine discards all of the
call's tentative state before the exception reaches the caller.
"""

from typing import Optional


class SubdropError(Exception):
    """Base class for all subdrop errors."""
    pass


class InvalidInputError(SubdropError):
    """Raised for an empty recipient list, a non-positive batch size, etc."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class InsufficientBalanceError(SubdropError):
    """Raised when an account cannot cover the tokens a call needs."""

    def __init__(self, account: str, required: int, available: int):
        self.account = account
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient balance for {account}: required {required}, available {available}"
        )


class InsufficientAllowanceError(SubdropError):
    """Raised when the engine's spend allowance cannot cover a call."""

    def __init__(self, owner: str, spender: str, required: int, available: int):
        self.owner = owner
        self.spender = spender
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient allowance from {owner} to {spender}: "
            f"required {required}, available {available}"
        )


class TransferFailedError(SubdropError):
    """Raised when the token ledger rejects a transfer."""

    def __init__(self, source: str, destination: str, amount: int, reason: Optional[str] = None):
        self.source = source
        self.destination = destination
        self.amount = amount
        message = f"Transfer of {amount} from {source} to {destination} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnauthorizedError(SubdropError):
    """Raised when a non-owner invokes an owner-only operation."""

    def __init__(self, caller: str, operation: str):
        self.caller = caller
        self.operation = operation
        super().__init__(f"{caller} is not authorized to call {operation}")


class ReentrancyError(SubdropError):
    """Raised when an operation is re-entered while another is still active."""

    def __init__(self, operation: str, active: str):
        self.operation = operation
        self.active = active
        super().__init__(f"Re-entrant call to {operation} while {active} is in progress")
