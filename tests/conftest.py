"""
Shared fixtures: a scripted in-memory ledger that records every call in order.
"""

import random
import threading
from typing import Any, Dict, List, Optional, Tuple

import pytest

from cardano_gacha.draw import to_lovelace
from cardano_gacha.ledger import ConfirmationStatus, LedgerClient, LedgerError, MintSubmission
from cardano_gacha.pull import PullOrchestrator
from cardano_gacha.wallet import WalletSession

USER_ADDRESS = "addr_test1qzuser0000000000000000000000000000000000000000000000000"
TREASURY_ADDRESS = "addr_test1qqtreasury00000000000000000000000000000000000000000000"
POLICY_ID = "a" * 56


class ScriptedLedger(LedgerClient):
    def __init__(
        self,
        balance: int = to_lovelace(100),
        payment_status: ConfirmationStatus = ConfirmationStatus.CONFIRMED,
        mint_status: ConfirmationStatus = ConfirmationStatus.CONFIRMED,
        payment_error: Optional[Exception] = None,
        mint_error: Optional[Exception] = None,
        wallets: Optional[Dict[str, str]] = None,
    ) -> None:
        self.balance = balance
        self.payment_status = payment_status
        self.mint_status = mint_status
        self.payment_error = payment_error
        self.mint_error = mint_error
        self.wallets = wallets if wallets is not None else {"lace": USER_ADDRESS}
        self.calls: List[Tuple[str, Any]] = []
        # Set to block get_spendable_balance until released.
        self.balance_gate: Optional[threading.Event] = None
        self.balance_entered = threading.Event()

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def get_wallet_address(self, wallet_name: str) -> str:
        self.calls.append(("get_wallet_address", wallet_name))
        if wallet_name not in self.wallets:
            raise LedgerError(f"unknown wallet {wallet_name}")
        return self.wallets[wallet_name]

    def get_spendable_balance(self, address: str) -> int:
        self.calls.append(("get_spendable_balance", address))
        self.balance_entered.set()
        if self.balance_gate is not None:
            self.balance_gate.wait(timeout=5)
        return self.balance

    def submit_payment(self, from_address: str, to_address: str, lovelace: int) -> str:
        self.calls.append(("submit_payment", (from_address, to_address, lovelace)))
        if self.payment_error is not None:
            raise self.payment_error
        return "pay-tx-1"

    def submit_mint(self, address: str, descriptor) -> MintSubmission:
        self.calls.append(("submit_mint", (address, descriptor)))
        if self.mint_error is not None:
            raise self.mint_error
        return MintSubmission(tx_hash="mint-tx-1", policy_id=POLICY_ID)

    def await_confirmation(self, tx_hash: str, timeout_s: float) -> ConfirmationStatus:
        self.calls.append(("await_confirmation", tx_hash))
        if tx_hash.startswith("pay"):
            return self.payment_status
        return self.mint_status


@pytest.fixture
def ledger() -> ScriptedLedger:
    return ScriptedLedger()


@pytest.fixture
def wallet(ledger: ScriptedLedger) -> WalletSession:
    return WalletSession.with_address(ledger, USER_ADDRESS)


def make_orchestrator(ledger: LedgerClient, cost_ada: int = 5, **kwargs) -> PullOrchestrator:
    kwargs.setdefault("rng", random.Random(1234))
    return PullOrchestrator(
        ledger=ledger,
        treasury_address=TREASURY_ADDRESS,
        pull_cost_lovelace=to_lovelace(cost_ada),
        confirm_timeout_s=3.0,
        **kwargs,
    )
