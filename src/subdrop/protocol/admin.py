"""
subdrop/protocol/admin.py

Owner-restricted configuration and emergency operations.

Every operation runs inside the engine's atomic section and starts with an
explicit check that the caller is the engine's owner, so it can neither
interleave with nor be re-entered from a distribution.
"""

import logging
from typing import TYPE_CHECKING

from ..errors import InvalidInputError, TransferFailedError, UnauthorizedError
from .events import BatchSizeChanged, FundsWithdrawn, OwnershipTransferred, SenderRecordReset

if TYPE_CHECKING:
    from .distribution import DistributionEngine

logger = logging.getLogger("subdrop.protocol.admin")


class AdminControls:
    """
    Administrative operations for a DistributionEngine.

    Usage:
        engine.admin.set_batch_size("0xOwner", 100)
        engine.admin.reset_sender_record("0xOwner", "0xSender", "0xRecipient")
        engine.admin.emergency_withdraw("0xOwner", stuck_amount)
    """

    def __init__(self, engine: "DistributionEngine"):
        self._engine = engine

    def _require_owner(self, caller: str, operation: str) -> None:
        if caller != self._engine.owner:
            logger.warning(f"Unauthorized {operation} attempt by {caller}")
            raise UnauthorizedError(caller, operation)

    def set_batch_size(self, caller: str, new_size: int) -> None:
        """
        Replace the distribution chunk size.

        Raises:
            UnauthorizedError: Caller is not the owner
            InvalidInputError: new_size is not a positive int (size is left unchanged)
        """
        engine = self._engine
        with engine._section.run("set_batch_size") as pending:
            self._require_owner(caller, "set_batch_size")
            if isinstance(new_size, bool) or not isinstance(new_size, int):
                raise InvalidInputError("batch_size", f"must be an integer, got {new_size!r}")
            if new_size <= 0:
                raise InvalidInputError("batch_size", f"must be positive, got {new_size}")

            engine._batch_size = new_size
            pending.append(BatchSizeChanged(new_size=new_size))

        logger.info(f"Batch size set to {new_size}")

    def emergency_withdraw(self, caller: str, amount: int) -> None:
        """
        Move tokens held by the engine itself to the owner.

        Raises:
            UnauthorizedError: Caller is not the owner
            TransferFailedError: The ledger rejected the transfer
        """
        engine = self._engine
        with engine._section.run("emergency_withdraw") as pending:
            self._require_owner(caller, "emergency_withdraw")

            if not engine.ledger.transfer(engine.address, caller, amount):
                raise TransferFailedError(engine.address, caller, amount, "ledger rejected transfer")
            pending.append(FundsWithdrawn(owner=caller, amount=amount))

        logger.info(f"Emergency withdrawal of {amount} to {caller}")

    def reset_sender_record(self, caller: str, sender: str, recipient: str) -> None:
        """
        Allow `sender` to drop to `recipient` again.

        The sender's score is not reduced: the reset lifts the block, not
        the credit already earned.

        Raises:
            UnauthorizedError: Caller is not the owner
        """
        engine = self._engine
        with engine._section.run("reset_sender_record") as pending:
            self._require_owner(caller, "reset_sender_record")

            was_set = engine._scores.clear_sent(sender, recipient)
            pending.append(SenderRecordReset(sender=sender, recipient=recipient))

        logger.info(f"Sent record reset for {sender} -> {recipient} (was set: {was_set})")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """
        Hand admin rights to another account.

        Raises:
            UnauthorizedError: Caller is not the owner
            InvalidInputError: new_owner is blank
        """
        engine = self._engine
        with engine._section.run("transfer_ownership") as pending:
            self._require_owner(caller, "transfer_ownership")
            if not new_owner:
                raise InvalidInputError("new_owner", "owner address is required")

            previous = engine._owner
            engine._owner = new_owner
            pending.append(OwnershipTransferred(previous_owner=previous, new_owner=new_owner))

        logger.info(f"Ownership transferred from {previous} to {new_owner}")
