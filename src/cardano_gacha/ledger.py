"""Ledger capability consumed by the pull orchestrator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from .token import TokenDescriptor


class LedgerError(RuntimeError):
    pass


class ConfirmationStatus(Enum):
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class MintSubmission:
    tx_hash: str
    policy_id: str


class LedgerClient(ABC):
    """Everything a pull needs from the chain. Amounts are in lovelace."""

    @abstractmethod
    def get_spendable_balance(self, address: str) -> int:
        ...

    @abstractmethod
    def submit_payment(self, from_address: str, to_address: str, lovelace: int) -> str:
        """Build, sign and submit a payment. Returns the tx hash."""

    @abstractmethod
    def submit_mint(self, address: str, descriptor: TokenDescriptor) -> MintSubmission:
        """Mint one unit under a policy owned by address, with descriptor as metadata."""

    @abstractmethod
    def await_confirmation(self, tx_hash: str, timeout_s: float) -> ConfirmationStatus:
        ...

    def get_wallet_address(self, wallet_name: str) -> str:
        raise LedgerError(f"This ledger client cannot connect wallet {wallet_name!r}.")
