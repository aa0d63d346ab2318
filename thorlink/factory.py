"""
thorlink/factory.py

Contract factories and contract handles built from Hardhat artifacts.

A factory is created either from an artifact (libraries linked here) or from
a raw ABI + bytecode pair. The signer argument is one of two variants:
- ExplicitSigner(signer)                          deploy with this signer
- FactoryOptions(signer=None, libraries={...})    optional signer + link map
Both expose .signer and .libraries.
When no signer is given, the first available signer is used.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

from web3 import Web3
from web3.contract import Contract

from thorlink.artifacts import Artifact, ArtifactStore
from thorlink.errors import AbstractContractError, ThorPluginError
from thorlink.linker import link_libraries
from thorlink.signers import Signer, get_signers


@dataclass(frozen=True)
class ExplicitSigner:
    signer: Signer

    @property
    def libraries(self) -> Mapping[str, str]:
        return {}


@dataclass(frozen=True)
class FactoryOptions:
    signer: Optional[Signer] = None
    libraries: Mapping[str, str] = field(default_factory=dict)


SignerOrOptions = Union[ExplicitSigner, FactoryOptions]


class ContractHandle:
    """
    A deployed contract plus the signer that sends its transactions.

    Reads go through the web3 contract directly; writes are encoded here and
    signed by the bound signer, so local keys work without node-side accounts.
    """

    def __init__(self, contract: Contract, signer: Optional[Signer] = None) -> None:
        self.contract = contract
        self.signer = signer

    def __repr__(self) -> str:
        return f"ContractHandle({self.address}, signer={self.signer!r})"

    @property
    def address(self) -> str:
        return self.contract.address

    @property
    def abi(self) -> list[dict[str, Any]]:
        return self.contract.abi

    @property
    def functions(self) -> Any:
        return self.contract.functions

    @property
    def events(self) -> Any:
        return self.contract.events

    def call(self, fn_name: str, *args: Any) -> Any:
        fn = self.contract.get_function_by_name(fn_name)(*args)
        if self.signer is None:
            return fn.call()
        return fn.call({"from": self.signer.address})

    def build_transaction(self, fn_name: str, *args: Any, value: int = 0) -> dict[str, Any]:
        """Unsigned transaction calling fn_name; from/nonce/fees are filled in by the signer."""
        tx: dict[str, Any] = {
            "to": self.address,
            "data": self.contract.encode_abi(fn_name, args=list(args)),
        }
        if value:
            tx["value"] = value
        return tx

    def transact(self, fn_name: str, *args: Any, value: int = 0) -> str:
        """Send a state-changing call with the bound signer. Returns the tx hash hex."""
        if self.signer is None:
            raise ThorPluginError(f"Cannot send {fn_name}: the contract at {self.address} has no signer")
        return self.signer.send_transaction(self.build_transaction(fn_name, *args, value=value))

    def connect(self, signer: Signer) -> "ContractHandle":
        return ContractHandle(self.contract, signer)


class ContractFactory:
    def __init__(self, w3: Web3, abi: list[dict[str, Any]], bytecode: str, signer: Optional[Signer] = None) -> None:
        self.w3 = w3
        self.abi = abi
        self.bytecode = bytecode
        self.signer = signer

    def __repr__(self) -> str:
        return f"ContractFactory(signer={self.signer!r}, bytecode={len(self.bytecode)} chars)"

    def get_deploy_transaction(self, *args: Any) -> dict[str, Any]:
        """Unsigned creation transaction: just the linked bytecode plus encoded constructor args."""
        ctor = self.w3.eth.contract(abi=self.abi, bytecode=self.bytecode).constructor(*args)
        return {"data": ctor.data_in_transaction}

    def deploy(self, *args: Any, timeout_s: int = 120) -> ContractHandle:
        """Send the creation transaction with the factory's signer and return the deployed contract."""
        if self.signer is None:
            raise ThorPluginError("Cannot deploy: the contract factory has no signer")

        tx_hash = self.signer.send_transaction(self.get_deploy_transaction(*args))
        rcpt = self.signer.wait_receipt(tx_hash, timeout_s)
        if rcpt.status != 1:
            raise ThorPluginError(f"Contract deployment reverted (tx {tx_hash})")

        return self.attach(rcpt.contractAddress)

    def attach(self, address: str) -> ContractHandle:
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=self.abi)
        return ContractHandle(contract, self.signer)

    def connect(self, signer: Signer) -> "ContractFactory":
        return ContractFactory(self.w3, self.abi, self.bytecode, signer)


def _default_signer(w3: Web3, private_keys: Sequence[str]) -> Optional[Signer]:
    signers = get_signers(w3, private_keys)
    return signers[0] if signers else None


def get_contract_factory_from_abi(
    w3: Web3,
    abi: list[dict[str, Any]],
    bytecode: str,
    signer: Optional[Signer] = None,
    private_keys: Sequence[str] = (),
) -> ContractFactory:
    if signer is None:
        signer = _default_signer(w3, private_keys)
    return ContractFactory(w3, abi, bytecode, signer)


def get_contract_factory_from_artifact(
    w3: Web3,
    artifact: Artifact,
    options: Optional[SignerOrOptions] = None,
    private_keys: Sequence[str] = (),
) -> ContractFactory:
    """Link the artifact's libraries and build a factory for it."""
    options = options or FactoryOptions()

    if artifact.is_abstract:
        raise AbstractContractError(artifact.contract_name)

    bytecode = link_libraries(artifact, options.libraries)
    return get_contract_factory_from_abi(w3, artifact.abi, bytecode, options.signer, private_keys)


def get_contract_factory(
    w3: Web3,
    store: ArtifactStore,
    name: str,
    options: Optional[SignerOrOptions] = None,
    private_keys: Sequence[str] = (),
) -> ContractFactory:
    return get_contract_factory_from_artifact(w3, store.read_artifact(name), options, private_keys)


def get_contract_at_from_artifact(
    w3: Web3,
    artifact: Artifact,
    address: str,
    signer: Optional[Signer] = None,
    private_keys: Sequence[str] = (),
) -> ContractHandle:
    return get_contract_at(w3, None, artifact.abi, address, signer, private_keys)


def get_contract_at(
    w3: Web3,
    store: Optional[ArtifactStore],
    name_or_abi: Union[str, list[dict[str, Any]]],
    address: str,
    signer: Optional[Signer] = None,
    private_keys: Sequence[str] = (),
) -> ContractHandle:
    """
    Contract handle by artifact name or by raw ABI.

    Bound to signer, else to the first available signer. With no signer at all
    the handle is read-only.
    """
    if isinstance(name_or_abi, str):
        if store is None:
            raise ThorPluginError(f"Cannot look up {name_or_abi}: no artifact store")
        abi = store.read_artifact(name_or_abi).abi
    else:
        abi = name_or_abi

    if signer is None:
        signer = _default_signer(w3, private_keys)
    contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
    return ContractHandle(contract, signer)
