"""
subdrop/protocol/sale.py

Fixed-rate native currency to token conversion.

Buyers pay native currency into the sale and receive `amount_paid * rate`
tokens from the sale's own token reserve. Collected native currency can
only be swept, by the owner, to the fixed treasury address.
"""

import logging
from typing import Any, Dict, Optional

from ..config import SaleConfig
from ..errors import (
    InsufficientBalanceError,
    InvalidInputError,
    TransferFailedError,
    UnauthorizedError,
)
from ..ledger.base import TokenLedger
from .atomic import AtomicSection
from .events import NativeWithdrawn, NotificationHub, TokensPurchased

logger = logging.getLogger("subdrop.protocol.sale")


class TokenSale:
    """
    Token sale at a fixed conversion rate.

    Usage:
        sale = TokenSale(token_ledger, native_ledger, "0xSale", owner="0xOwner")
        tokens = sale.buy("0xBuyer", 2)     # 2 native units -> 2 * rate tokens
        swept = sale.withdraw("0xOwner")    # native units to the treasury
    """

    def __init__(
        self,
        token_ledger: TokenLedger,
        native_ledger: TokenLedger,
        address: str,
        owner: str,
        config: Optional[SaleConfig] = None,
        hub: Optional[NotificationHub] = None,
    ):
        """
        Initialize TokenSale.

        Args:
            token_ledger: Ledger of the token being sold
            native_ledger: Ledger of the currency buyers pay with
            address: The sale's own account on both ledgers
            owner: Account allowed to sweep collected currency
            config: Rate and treasury address
            hub: Notification hub (a private one is created if omitted)
        """
        if not address:
            raise InvalidInputError("address", "sale address is required")
        if not owner:
            raise InvalidInputError("owner", "owner address is required")

        self.token_ledger = token_ledger
        self.native_ledger = native_ledger
        self.address = address
        self.owner = owner
        self.config = config or SaleConfig()
        self.hub = hub or NotificationHub()

        # Ledgers hold all of the sale's state
        self._section = AtomicSection(
            snapshot=lambda: None,
            restore=lambda _: None,
            ledgers=[token_ledger, native_ledger],
            hub=self.hub,
        )

    @property
    def rate(self) -> int:
        return self.config.rate

    @property
    def treasury_address(self) -> str:
        return self.config.treasury_address

    def token_reserve(self) -> int:
        """Tokens still available for sale."""
        return self.token_ledger.balance_of(self.address)

    def native_collected(self) -> int:
        """Native currency waiting to be swept."""
        return self.native_ledger.balance_of(self.address)

    def quote(self, amount_paid: int) -> int:
        """Tokens received for `amount_paid` native units."""
        return amount_paid * self.config.rate

    def buy(self, payer: str, amount_paid: int) -> int:
        """
        Convert native currency into tokens.

        Args:
            payer: Buyer (pays native currency, receives tokens)
            amount_paid: Native units paid

        Returns:
            Tokens delivered to the payer

        Raises:
            InvalidInputError: amount_paid <= 0
            InsufficientBalanceError: Reserve cannot cover the purchase
            TransferFailedError: A ledger rejected the payment or delivery
        """
        if amount_paid <= 0:
            raise InvalidInputError("amount_paid", f"must be positive, got {amount_paid}")

        tokens_out = self.quote(amount_paid)

        with self._section.run("buy") as pending:
            reserve = self.token_reserve()
            if reserve < tokens_out:
                raise InsufficientBalanceError(self.address, tokens_out, reserve)

            if not self.native_ledger.transfer(payer, self.address, amount_paid):
                raise TransferFailedError(payer, self.address, amount_paid, "payment rejected")
            if not self.token_ledger.transfer(self.address, payer, tokens_out):
                raise TransferFailedError(self.address, payer, tokens_out, "token delivery rejected")

            pending.append(TokensPurchased(buyer=payer, amount_paid=amount_paid, tokens_out=tokens_out))

        logger.info(f"{payer} bought {tokens_out} tokens for {amount_paid}")
        return tokens_out

    def withdraw(self, caller: str) -> int:
        """
        Sweep all collected native currency to the treasury address.

        Returns:
            Amount swept

        Raises:
            UnauthorizedError: Caller is not the owner
            TransferFailedError: The native ledger rejected the sweep
        """
        with self._section.run("withdraw") as pending:
            if caller != self.owner:
                logger.warning(f"Unauthorized withdraw attempt by {caller}")
                raise UnauthorizedError(caller, "withdraw")

            amount = self.native_collected()
            destination = self.config.treasury_address
            if not self.native_ledger.transfer(self.address, destination, amount):
                raise TransferFailedError(self.address, destination, amount, "sweep rejected")

            pending.append(NativeWithdrawn(destination=destination, amount=amount))

        logger.info(f"Swept {amount} native units to {destination}")
        return amount

    def get_stats(self) -> Dict[str, Any]:
        return {
            "rate": self.config.rate,
            "token_reserve": self.token_reserve(),
            "native_collected": self.native_collected(),
            "treasury_address": self.config.treasury_address,
        }
