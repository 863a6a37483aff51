import pytest

from cardano_gacha.errors import NoWalletConnected
from cardano_gacha.ledger import LedgerError
from cardano_gacha.wallet import WalletSession, short_address

from conftest import USER_ADDRESS


def test_connect_and_disconnect(ledger) -> None:
    wallet = WalletSession(ledger)
    assert not wallet.is_connected
    with pytest.raises(NoWalletConnected):
        wallet.require_address()

    assert wallet.connect("lace") == USER_ADDRESS
    assert wallet.is_connected
    assert wallet.wallet_name == "lace"
    assert wallet.require_address() == USER_ADDRESS

    wallet.disconnect()
    assert wallet.address is None
    assert wallet.wallet_name is None


def test_unknown_wallet_stays_disconnected(ledger) -> None:
    wallet = WalletSession(ledger)
    with pytest.raises(LedgerError):
        wallet.connect("nami")
    assert not wallet.is_connected


def test_short_address() -> None:
    assert short_address("addr_test1qq4uxwv55dqwufts3md0g9r6rn4vys") == "addr_tes...r6rn4vys"
