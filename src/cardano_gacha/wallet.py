from __future__ import annotations

import logging
from typing import Optional

from .errors import NoWalletConnected
from .ledger import LedgerClient

log = logging.getLogger("wallet")


class WalletSession:
    """A connected signing identity. The address doubles as the pull identity."""

    def __init__(self, ledger: LedgerClient) -> None:
        self.ledger = ledger
        self.wallet_name: Optional[str] = None
        self._address: Optional[str] = None

    @classmethod
    def with_address(cls, ledger: LedgerClient, address: str) -> "WalletSession":
        session = cls(ledger)
        session._address = address
        return session

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def is_connected(self) -> bool:
        return bool(self._address)

    def require_address(self) -> str:
        if not self._address:
            raise NoWalletConnected()
        return self._address

    def connect(self, wallet_name: str) -> str:
        self._address = self.ledger.get_wallet_address(wallet_name)
        self.wallet_name = wallet_name
        log.info("Connected %s: %s", wallet_name, short_address(self._address))
        return self._address

    def disconnect(self) -> None:
        self.wallet_name = None
        self._address = None


def short_address(addr: str) -> str:
    return f"{addr[:8]}...{addr[-8:]}"
