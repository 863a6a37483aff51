from __future__ import annotations

import itertools
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from .ledger import ConfirmationStatus, LedgerClient, LedgerError, MintSubmission
from .project_constants import CONFIRM_POLL_INTERVAL_S, MINT_VALIDITY_MS, POLICY_LOCK_MS
from .token import TokenDescriptor, build_mint_metadata

log = logging.getLogger("rpc")


class RpcClient(LedgerClient):
    """
    JSON-RPC client for the wallet bridge.

    The bridge holds the signing keys: it builds, signs and submits payment and
    mint transactions for addresses it controls, and reports their status.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 60.0,
        poll_interval_s: float = CONFIRM_POLL_INTERVAL_S,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.rpc_url = rpc_url
        self.poll_interval_s = poll_interval_s
        self.client = httpx.Client(timeout=timeout_s, transport=transport)
        self._ids = itertools.count(1)
        self._sleep = sleep
        self._clock = clock

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _call(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            resp = self.client.post(self.rpc_url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise LedgerError(f"{method}: transport error: {e}") from e
        if "error" in data:
            raise LedgerError(f"{method}: RPC error: {data['error']}")
        if "result" not in data:
            raise LedgerError(f"{method}: response has no result.")
        return data["result"]

    def get_wallet_address(self, wallet_name: str) -> str:
        address = self._call("wallet_getAddress", [wallet_name])
        if not isinstance(address, str) or not address:
            raise LedgerError(f"Wallet {wallet_name!r} returned no address.")
        return address

    def get_spendable_balance(self, address: str) -> int:
        """Sum of lovelace over every UTxO at address."""
        utxos = self._call("wallet_getUtxos", [address]) or []
        total = 0
        for utxo in utxos:
            # utxo["assets"] is {"lovelace": "<int as string>", <unit>: ...}
            try:
                total += int(utxo["assets"]["lovelace"])
            except (KeyError, TypeError, ValueError) as e:
                raise LedgerError(f"wallet_getUtxos: malformed UTxO {utxo!r}") from e
        return total

    def submit_payment(self, from_address: str, to_address: str, lovelace: int) -> str:
        tx_hash = self._call(
            "wallet_payToAddress",
            [{"from": from_address, "to": to_address, "lovelace": str(lovelace)}],
        )
        log.debug("Payment submitted: %s", tx_hash)
        return _tx_hash(tx_hash, "wallet_payToAddress")

    def submit_mint(self, address: str, descriptor: TokenDescriptor) -> MintSubmission:
        now_ms = int(time.time() * 1000)
        policy = self._call(
            "wallet_mintingPolicy",
            [{"address": address, "validBeforeMs": now_ms + POLICY_LOCK_MS}],
        )
        try:
            policy_id = str(policy["policyId"])
            script = policy["script"]
        except (KeyError, TypeError) as e:
            raise LedgerError(f"wallet_mintingPolicy: malformed policy {policy!r}") from e

        params: Dict[str, Any] = {
            "address": address,
            "policy": script,
            "assets": {policy_id + descriptor.asset_name_hex: "1"},
            # JSON object keys are strings; the bridge maps "721" back to the label.
            "metadata": {str(k): v for k, v in build_mint_metadata(policy_id, descriptor).items()},
            "validToMs": now_ms + MINT_VALIDITY_MS,
        }
        tx_hash = _tx_hash(self._call("wallet_mintAssets", [params]), "wallet_mintAssets")
        log.debug("Mint submitted: %s (policy %s)", tx_hash, policy_id)
        return MintSubmission(tx_hash=tx_hash, policy_id=policy_id)

    def get_transaction_status(self, tx_hash: str) -> str:
        return str(self._call("chain_getTransactionStatus", [tx_hash]))

    def await_confirmation(self, tx_hash: str, timeout_s: float) -> ConfirmationStatus:
        deadline = self._clock() + timeout_s
        while True:
            try:
                status = self.get_transaction_status(tx_hash)
            except LedgerError as e:
                # Poll failures are retried until the deadline.
                log.warning("Status poll for %s failed: %s", tx_hash, e)
                status = "pending"
            if status == "confirmed":
                return ConfirmationStatus.CONFIRMED
            if status == "rejected":
                return ConfirmationStatus.REJECTED
            if status != "pending":
                raise LedgerError(f"Unknown status {status!r} for {tx_hash}")
            if self._clock() >= deadline:
                log.warning("Gave up waiting for %s after %.0fs", tx_hash, timeout_s)
                return ConfirmationStatus.TIMEOUT
            self._sleep(self.poll_interval_s)


def _tx_hash(value: Any, method: str) -> str:
    if not isinstance(value, str) or not value:
        raise LedgerError(f"{method}: returned no transaction hash.")
    return value
