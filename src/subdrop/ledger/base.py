"""
subdrop/ledger/base.py

Token ledger capability set consumed by subdrop.

The ledger is an external collaborator: subdrop never owns balances, it
only reads them and moves tokens through the ledger's own transfer
capabilities. The acting account is always passed explicitly.

Architecture:
    TokenLedger (abstract)
    └── InMemoryTokenLedger (reference ledger, tests and local node)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger("subdrop.ledger.base")


class TokenLedger(ABC):
    """
    Abstract fungible-token ledger.

    Subclass this to connect subdrop to a real token backend. Transfer
    methods return False when the ledger rejects the transfer; subdrop
    treats that as fatal for the current call.
    """

    @abstractmethod
    def balance_of(self, account: str) -> int:
        """
        Get the token balance of an account.

        Args:
            account: Account address

        Returns:
            Balance in base units
        """
        pass

    @abstractmethod
    def allowance(self, owner: str, spender: str) -> int:
        """
        Get how much `spender` may still move on behalf of `owner`.

        Args:
            owner: Token holder
            spender: Account authorized to spend

        Returns:
            Remaining allowance in base units
        """
        pass

    @abstractmethod
    def transfer(self, sender: str, to: str, amount: int) -> bool:
        """
        Move tokens from the acting account to `to`.

        Args:
            sender: Acting account (tokens leave this account)
            to: Destination account
            amount: Amount in base units

        Returns:
            True if the transfer was applied
        """
        pass

    @abstractmethod
    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        """
        Move tokens from `owner` to `to` using `spender`'s allowance.

        Args:
            spender: Acting account holding the allowance
            owner: Account the tokens leave
            to: Destination account
            amount: Amount in base units

        Returns:
            True if the transfer was applied
        """
        pass

    def checkpoint(self) -> Any:
        """
        Open a checkpoint for the calling thread so a failed call can be undone.

        Rollback must only undo changes made by the calling thread after the
        checkpoint; concurrent changes from other threads are kept. Ledgers
        without transactional support return None.
        """
        return None

    def commit(self, checkpoint: Any) -> None:
        """Close a checkpoint whose call succeeded."""
        pass

    def rollback(self, checkpoint: Any) -> None:
        """Undo the calling thread's changes since checkpoint() and close it."""
        if checkpoint is None:
            logger.warning(
                f"{type(self).__name__} does not support rollback; "
                "ledger-side effects of the failed call are kept"
            )
