from __future__ import annotations


class GachaError(Exception):
    """Base class for every failure a pull can surface."""


class InvalidConfiguration(GachaError):
    pass


class NoWalletConnected(GachaError):
    def __init__(self) -> None:
        super().__init__("Please connect your wallet first!")


class InsufficientFunds(GachaError):
    def __init__(self, balance: int, required: int) -> None:
        self.balance = balance
        self.required = required
        self.shortfall = required - balance
        super().__init__(
            f"Insufficient balance: have {balance} lovelace, need {required} "
            f"(short {self.shortfall})."
        )


class PullAlreadyInProgress(GachaError):
    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(f"A pull is already in progress for {identity}.")


class PullCancelled(GachaError):
    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(f"Pull for {identity} was cancelled before payment.")


class PaymentSubmissionFailed(GachaError):
    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Payment could not be submitted: {cause}")


class PaymentConfirmationFailed(GachaError):
    def __init__(self, reason: str, payment_tx: str) -> None:
        self.reason = reason
        self.payment_tx = payment_tx
        super().__init__(f"Payment {payment_tx} was not confirmed ({reason}).")


class PaidButUnrewarded(GachaError):
    """The treasury was paid but no token reached the user.

    ``payment_tx`` identifies the confirmed payment so the pull can be
    reconciled by hand or by a refund job.
    """

    def __init__(self, message: str, payment_tx: str) -> None:
        self.payment_tx = payment_tx
        super().__init__(f"{message} (payment {payment_tx} already confirmed)")


class MintSubmissionFailed(PaidButUnrewarded):
    def __init__(self, cause: BaseException, payment_tx: str) -> None:
        self.cause = cause
        super().__init__(f"Mint could not be submitted: {cause}", payment_tx)


class MintConfirmationFailed(PaidButUnrewarded):
    def __init__(self, reason: str, payment_tx: str, mint_tx: str) -> None:
        self.reason = reason
        self.mint_tx = mint_tx
        super().__init__(f"Mint {mint_tx} was not confirmed ({reason})", payment_tx)


class DrawFailed(PaidButUnrewarded):
    def __init__(self, cause: BaseException, payment_tx: str) -> None:
        self.cause = cause
        super().__init__(f"Reward could not be drawn: {cause}", payment_tx)
