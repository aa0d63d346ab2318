"""
thorlink/signers.py

Signers for the Thor node.

A signer is an address plus an optional local account:
- configured private keys become local signers; transactions are signed here
  and sent with eth_sendRawTransaction
- without keys, the node's own accounts (eth_accounts) are used and
  transactions go through eth_sendTransaction
"""

from typing import Any, Optional, Sequence

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3


class Signer:
    def __init__(self, w3: Web3, address: str, account: Optional[LocalAccount] = None) -> None:
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.account = account

    def __repr__(self) -> str:
        kind = "local" if self.account else "node"
        return f"Signer({self.address}, {kind})"

    @property
    def is_local(self) -> bool:
        return self.account is not None

    def get_address(self) -> str:
        return self.address

    def get_balance(self) -> int:
        return self.w3.eth.get_balance(self.address)

    def get_transaction_count(self) -> int:
        return self.w3.eth.get_transaction_count(self.address)

    def get_chain_id(self) -> int:
        return self.w3.eth.chain_id

    def estimate_gas(self, tx: dict[str, Any]) -> int:
        return self.w3.eth.estimate_gas({**tx, "from": self.address})

    def call(self, tx: dict[str, Any]) -> str:
        return Web3.to_hex(self.w3.eth.call({**tx, "from": self.address}))

    def populate_transaction(self, tx: dict[str, Any]) -> dict[str, Any]:
        """
        Fill in from, nonce, chainId, fee fields and gas.

        EIP-1559 fields are used when the latest block reports baseFeePerGas,
        legacy gasPrice otherwise. Never both.
        """
        tx = dict(tx)
        tx.setdefault("from", self.address)
        tx.setdefault("nonce", self.get_transaction_count())
        tx.setdefault("chainId", self.get_chain_id())

        latest_block = self.w3.eth.get_block("latest")
        base_fee = latest_block.get("baseFeePerGas")

        if base_fee is None or "gasPrice" in tx:
            tx.setdefault("gasPrice", self.w3.eth.gas_price)
        else:
            try:
                priority = self.w3.eth.max_priority_fee  # not every node supports it
            except Exception:
                priority = self.w3.to_wei(1, "gwei")
            tx.setdefault("maxPriorityFeePerGas", int(priority))
            tx.setdefault("maxFeePerGas", int(base_fee * 2 + priority))
            tx.setdefault("type", 2)

        # Gas estimation (do this after fee fields are present)
        if "gas" not in tx:
            tx["gas"] = self.w3.eth.estimate_gas(tx)
        return tx

    def send_transaction(self, tx: dict[str, Any]) -> str:
        """Sign (locally or on the node) and broadcast a transaction. Returns the tx hash hex."""
        if self.account is None:
            return Web3.to_hex(self.w3.eth.send_transaction({**tx, "from": self.address}))

        populated = self.populate_transaction(tx)
        signed = self.account.sign_transaction(populated)

        # eth-account compatibility: rawTransaction vs raw_transaction
        raw = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction")
        return Web3.to_hex(self.w3.eth.send_raw_transaction(raw))

    def wait_receipt(self, tx_hash: str, timeout_s: int = 120) -> Any:
        """Wait for a transaction receipt."""
        return self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout_s)


def local_signers(w3: Web3, private_keys: Sequence[str]) -> list[Signer]:
    signers = []
    for key in private_keys:
        acct = Account.from_key(key)
        signers.append(Signer(w3, acct.address, acct))
    return signers


def get_signers(w3: Web3, private_keys: Sequence[str] = ()) -> list[Signer]:
    """One signer per configured key, or per node account when no keys are configured."""
    if private_keys:
        return local_signers(w3, private_keys)
    return [Signer(w3, addr) for addr in w3.eth.accounts]


def get_signer(w3: Web3, address: str, private_keys: Sequence[str] = ()) -> Signer:
    """Signer for address; local if one of the configured keys controls it."""
    wanted = address.lower()
    for signer in local_signers(w3, private_keys):
        if signer.address.lower() == wanted:
            return signer
    return Signer(w3, address)
