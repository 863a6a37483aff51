"""
Pull orchestration: pay the treasury, draw, mint.

A pull is an explicit state machine, one handler per state. Payment must be
confirmed before anything is drawn, and nothing is minted without a drawn
reward, so a failure can be attributed to exactly one stage.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from .config import Settings
from .draw import DrawResult, draw_reward, random_draw_value, to_ada
from .errors import (
    DrawFailed,
    InsufficientFunds,
    MintConfirmationFailed,
    MintSubmissionFailed,
    NoWalletConnected,
    PaidButUnrewarded,
    PaymentConfirmationFailed,
    PaymentSubmissionFailed,
    PullAlreadyInProgress,
    PullCancelled,
)
from .ledger import ConfirmationStatus, LedgerClient
from .project_constants import DEFAULT_CONFIRM_TIMEOUT_S, EXPLORER_TX_URL
from .tiers import DEFAULT_TABLE, TierTable
from .token import TokenDescriptor, build_token_descriptor
from .wallet import WalletSession

log = logging.getLogger("pull")


class PullState(Enum):
    IDLE = "idle"
    VALIDATING = "validating_preconditions"
    PAYING = "paying"
    AWAITING_PAYMENT = "awaiting_payment_confirmation"
    DRAWING = "drawing"
    MINTING = "minting"
    AWAITING_MINT = "awaiting_mint_confirmation"
    COMPLETED = "completed"
    ERRORED = "errored"


TERMINAL_STATES = frozenset({PullState.COMPLETED, PullState.ERRORED})
CANCELLABLE_STATES = frozenset({PullState.IDLE, PullState.VALIDATING})


@dataclass
class PullSession:
    wallet: WalletSession
    identity: Optional[str]
    state: PullState = PullState.IDLE
    history: List[PullState] = field(default_factory=lambda: [PullState.IDLE])
    payment_tx: Optional[str] = None
    payment_confirmed: bool = False
    draw: Optional[DrawResult] = None
    descriptor: Optional[TokenDescriptor] = None
    mint_tx: Optional[str] = None
    policy_id: Optional[str] = None
    error: Optional[BaseException] = None
    cancel_requested: bool = False

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass(frozen=True)
class PullReceipt:
    identity: str
    draw: DrawResult
    descriptor: TokenDescriptor
    payment_tx: str
    mint_tx: str
    policy_id: str

    @property
    def explorer_url(self) -> str:
        return f"{EXPLORER_TX_URL}{self.mint_tx}"


class PullOrchestrator:
    def __init__(
        self,
        ledger: LedgerClient,
        treasury_address: str,
        pull_cost_lovelace: int,
        table: TierTable = DEFAULT_TABLE,
        confirm_timeout_s: float = DEFAULT_CONFIRM_TIMEOUT_S,
        rng: Optional[random.Random] = None,
        on_complete: Optional[Callable[[PullReceipt], None]] = None,
    ) -> None:
        self.ledger = ledger
        self.treasury_address = treasury_address
        self.pull_cost_lovelace = pull_cost_lovelace
        self.table = table
        self.confirm_timeout_s = confirm_timeout_s
        self.rng = rng or random.SystemRandom()
        self.on_complete = on_complete

        self._lock = threading.Lock()
        self._in_flight: Dict[str, PullSession] = {}
        self._handlers: Dict[PullState, Callable[[PullSession], PullState]] = {
            PullState.IDLE: self._start,
            PullState.VALIDATING: self._validate,
            PullState.PAYING: self._pay,
            PullState.AWAITING_PAYMENT: self._await_payment,
            PullState.DRAWING: self._draw,
            PullState.MINTING: self._mint,
            PullState.AWAITING_MINT: self._await_mint,
        }

    @classmethod
    def from_settings(cls, ledger: LedgerClient, settings: Settings, **kwargs) -> "PullOrchestrator":
        return cls(
            ledger=ledger,
            treasury_address=settings.treasury_address,
            pull_cost_lovelace=settings.pull_cost_lovelace,
            table=settings.tier_table,
            confirm_timeout_s=settings.confirm_timeout_s,
            **kwargs,
        )

    # -- public API ---------------------------------------------------------

    def pull(self, wallet: WalletSession) -> PullReceipt:
        return self.run(self.begin(wallet))

    def begin(self, wallet: WalletSession) -> PullSession:
        """Open a pull for the wallet's identity. At most one is in flight per identity."""
        identity = wallet.address
        session = PullSession(wallet=wallet, identity=identity)
        if identity is None:
            # Fails in precondition checks; nothing to lock on.
            return session
        with self._lock:
            if identity in self._in_flight:
                raise PullAlreadyInProgress(identity)
            self._in_flight[identity] = session
        return session

    def cancel(self, session: PullSession) -> bool:
        """Request cancellation. Refused once payment has started."""
        with self._lock:
            if session.state not in CANCELLABLE_STATES:
                return False
            session.cancel_requested = True
        if session.state is PullState.IDLE:
            self._fail(session, PullCancelled(session.identity or "?"))
            self._release(session)
        return True

    def in_flight(self, identity: str) -> bool:
        with self._lock:
            return identity in self._in_flight

    def run(self, session: PullSession) -> PullReceipt:
        try:
            while not session.done:
                next_state = self._handlers[session.state](session)
                self._advance(session, next_state)
        except Exception as e:
            self._fail(session, e)
            raise
        finally:
            self._release(session)

        if session.state is not PullState.COMPLETED:
            # cancelled before it ever ran
            raise session.error

        receipt = PullReceipt(
            identity=session.identity or "",
            draw=session.draw,
            descriptor=session.descriptor,
            payment_tx=session.payment_tx,
            mint_tx=session.mint_tx,
            policy_id=session.policy_id,
        )
        log.info(
            "Pull complete for %s: %s %s (%d pts), mint %s",
            session.identity,
            receipt.draw.tier,
            receipt.descriptor.name,
            receipt.draw.score,
            receipt.mint_tx,
        )
        if self.on_complete is not None:
            self.on_complete(receipt)
        return receipt

    # -- state handlers -----------------------------------------------------

    def _start(self, session: PullSession) -> PullState:
        return PullState.VALIDATING

    def _validate(self, session: PullSession) -> PullState:
        # The guard and the payment are bound to the identity captured in begin().
        if session.identity is None or session.wallet.address != session.identity:
            raise NoWalletConnected()
        balance = self.ledger.get_spendable_balance(session.identity)
        required = self.pull_cost_lovelace
        if balance < required:
            raise InsufficientFunds(balance=balance, required=required)
        log.debug("Balance %s ADA covers pull cost %s ADA", to_ada(balance), to_ada(required))
        return PullState.PAYING

    def _pay(self, session: PullSession) -> PullState:
        try:
            session.payment_tx = self.ledger.submit_payment(
                session.identity, self.treasury_address, self.pull_cost_lovelace
            )
        except Exception as e:
            raise PaymentSubmissionFailed(e) from e
        log.info("Paid %s ADA to treasury: %s", to_ada(self.pull_cost_lovelace), session.payment_tx)
        return PullState.AWAITING_PAYMENT

    def _await_payment(self, session: PullSession) -> PullState:
        try:
            status = self._await(session.payment_tx)
        except Exception as e:
            raise PaymentConfirmationFailed(f"error: {e}", session.payment_tx) from e
        if status is not ConfirmationStatus.CONFIRMED:
            raise PaymentConfirmationFailed(status.value, session.payment_tx)
        session.payment_confirmed = True
        return PullState.DRAWING

    def _draw(self, session: PullSession) -> PullState:
        try:
            session.draw = draw_reward(random_draw_value(self.rng), self.rng, self.table)
            session.descriptor = build_token_descriptor(session.draw, self.rng, self.table)
        except Exception as e:
            raise DrawFailed(e, session.payment_tx) from e
        log.info("Drew %s (%s, %d pts)", session.draw.tier, session.draw.rating, session.draw.score)
        return PullState.MINTING

    def _mint(self, session: PullSession) -> PullState:
        if not session.payment_confirmed:
            raise RuntimeError("Refusing to mint without a confirmed payment.")
        try:
            submission = self.ledger.submit_mint(session.identity, session.descriptor)
        except Exception as e:
            raise MintSubmissionFailed(e, session.payment_tx) from e
        session.mint_tx = submission.tx_hash
        session.policy_id = submission.policy_id
        return PullState.AWAITING_MINT

    def _await_mint(self, session: PullSession) -> PullState:
        try:
            status = self._await(session.mint_tx)
        except Exception as e:
            raise MintConfirmationFailed(f"error: {e}", session.payment_tx, session.mint_tx) from e
        if status is not ConfirmationStatus.CONFIRMED:
            raise MintConfirmationFailed(status.value, session.payment_tx, session.mint_tx)
        return PullState.COMPLETED

    # -- plumbing -----------------------------------------------------------

    def _await(self, tx_hash: str) -> ConfirmationStatus:
        return self.ledger.await_confirmation(tx_hash, self.confirm_timeout_s)

    def _advance(self, session: PullSession, next_state: PullState) -> None:
        with self._lock:
            if session.cancel_requested:
                raise PullCancelled(session.identity or "?")
            log.debug("%s: %s -> %s", session.identity, session.state.value, next_state.value)
            session.state = next_state
            session.history.append(next_state)

    def _fail(self, session: PullSession, error: BaseException) -> None:
        with self._lock:
            if session.done:
                return
            session.error = error
            session.state = PullState.ERRORED
            session.history.append(PullState.ERRORED)
        if isinstance(error, PaidButUnrewarded):
            log.error("Paid but unrewarded, reconcile payment %s: %s", error.payment_tx, error)
        else:
            log.warning("Pull for %s failed: %s", session.identity, error)

    def _release(self, session: PullSession) -> None:
        if session.identity is None:
            return
        with self._lock:
            if self._in_flight.get(session.identity) is session:
                del self._in_flight[session.identity]
