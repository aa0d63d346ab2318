from types import SimpleNamespace

import pytest
from eth_account import Account
from web3 import Web3

from thorlink.artifacts import Artifact, ArtifactStore
from thorlink.errors import AbstractContractError, AmbiguousLibraryName, ThorPluginError, UnknownLibrary
from thorlink.factory import (
    ContractFactory,
    ContractHandle,
    ExplicitSigner,
    FactoryOptions,
    get_contract_at,
    get_contract_at_from_artifact,
    get_contract_factory,
    get_contract_factory_from_abi,
    get_contract_factory_from_artifact,
)
from thorlink.signers import Signer

KEY0 = "0x" + "11" * 32
KEY1 = "0x" + "22" * 32
ADDR_A = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
ADDR_B = "0xe7f1725e7734ce288f8367e1bb143e90bb3f0512"

GREET_ABI = [
    {
        "inputs": [],
        "name": "greet",
        "outputs": [{"internalType": "string", "name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    }
]

SET_GREETING = {
    "inputs": [{"internalType": "string", "name": "greeting", "type": "string"}],
    "name": "setGreeting",
    "outputs": [],
    "stateMutability": "nonpayable",
    "type": "function",
}
GREETER_ABI = GREET_ABI + [SET_GREETING]
NODE_ACCOUNT = "0x7567d83b7b8d80addcb281a71d54fc7b3364ffed"


@pytest.fixture
def w3():
    # No provider: nothing here may touch the network.
    return Web3()


class RecordingEth:
    """Node-managed accounts; records eth_sendTransaction calls."""

    def __init__(self):
        self.accounts = [Web3.to_checksum_address(NODE_ACCOUNT)]
        self.contract = Web3().eth.contract
        self.sent = []

    def send_transaction(self, tx):
        self.sent.append(tx)
        return b"\x02" * 32


@pytest.fixture
def node_w3():
    return SimpleNamespace(eth=RecordingEth())


@pytest.fixture
def signer(w3):
    acct = Account.from_key(KEY0)
    return Signer(w3, acct.address, acct)


def test_explicit_signer_has_no_libraries(signer):
    opts = ExplicitSigner(signer)
    assert opts.signer is signer
    assert dict(opts.libraries) == {}


def test_factory_options_defaults():
    opts = FactoryOptions()
    assert opts.signer is None
    assert dict(opts.libraries) == {}


def test_factory_from_artifact_links_libraries(w3, signer, two_lib_artifact):
    opts = FactoryOptions(signer=signer, libraries={"Math": ADDR_A, "Str": ADDR_B})
    factory = get_contract_factory_from_artifact(w3, two_lib_artifact, opts)

    assert factory.bytecode == "0x6080" + ADDR_A[2:] + "60" + ADDR_B[2:] + "00"
    assert factory.signer is signer
    assert factory.get_deploy_transaction()["data"] == factory.bytecode


def test_factory_from_artifact_with_explicit_signer_needs_no_links(w3, signer, artifact_dict):
    artifact = Artifact.from_dict(artifact_dict("0x6080604052"))
    factory = get_contract_factory_from_artifact(w3, artifact, ExplicitSigner(signer))
    assert factory.bytecode == "0x6080604052"
    assert factory.signer is signer


def test_factory_default_signer_is_first_key(w3, artifact_dict):
    artifact = Artifact.from_dict(artifact_dict())
    factory = get_contract_factory_from_artifact(w3, artifact, private_keys=[KEY0, KEY1])
    assert factory.signer.address == Account.from_key(KEY0).address
    assert factory.signer.is_local


def test_factory_rejects_abstract_contract(w3, signer, artifact_dict):
    artifact = Artifact.from_dict(artifact_dict("0x", name="IGreeter"))
    with pytest.raises(AbstractContractError, match="IGreeter, which is abstract"):
        get_contract_factory_from_artifact(w3, artifact, ExplicitSigner(signer))


def test_factory_surfaces_link_errors(w3, signer, two_lib_artifact):
    with pytest.raises(UnknownLibrary):
        get_contract_factory_from_artifact(w3, two_lib_artifact, FactoryOptions(signer, {"Nope": ADDR_A}))


def test_factory_ambiguous_library(w3, signer, artifact_dict):
    bytecode = "0x" + "00" * 40
    refs = {
        "contracts/A.sol": {"Lib": [{"start": 0, "length": 20}]},
        "contracts/B.sol": {"Lib": [{"start": 20, "length": 20}]},
    }
    artifact = Artifact.from_dict(artifact_dict(bytecode, refs))

    with pytest.raises(AmbiguousLibraryName):
        get_contract_factory_from_artifact(w3, artifact, FactoryOptions(signer, {"Lib": ADDR_A}))

    opts = FactoryOptions(signer, {"contracts/A.sol:Lib": ADDR_A, "contracts/B.sol:Lib": ADDR_B})
    factory = get_contract_factory_from_artifact(w3, artifact, opts)
    assert factory.bytecode == "0x" + ADDR_A[2:] + ADDR_B[2:]


def test_get_contract_factory_by_name(tmp_path, w3, signer, artifact_dict, write_artifact):
    write_artifact(artifact_dict("0x6080604052", abi=GREET_ABI))
    store = ArtifactStore(tmp_path / "artifacts")

    factory = get_contract_factory(w3, store, "Greeter", ExplicitSigner(signer))
    assert factory.abi == GREET_ABI
    assert factory.bytecode == "0x6080604052"


def test_factory_from_abi(w3, signer):
    factory = get_contract_factory_from_abi(w3, GREET_ABI, "0x6080604052", signer)
    assert isinstance(factory, ContractFactory)
    assert factory.get_deploy_transaction() == {"data": "0x6080604052"}


def test_attach_and_connect(w3, signer):
    factory = ContractFactory(w3, GREET_ABI, "0x6080604052")
    contract = factory.attach(ADDR_A)
    assert contract.address == Web3.to_checksum_address(ADDR_A)
    assert hasattr(contract.functions, "greet")

    connected = factory.connect(signer)
    assert connected.signer is signer
    assert factory.signer is None


def test_deploy_without_signer(w3):
    factory = ContractFactory(w3, GREET_ABI, "0x6080604052")
    with pytest.raises(ThorPluginError, match="no signer"):
        factory.deploy()


def test_get_contract_at(tmp_path, w3, artifact_dict, write_artifact):
    write_artifact(artifact_dict(abi=GREET_ABI))
    store = ArtifactStore(tmp_path / "artifacts")

    by_name = get_contract_at(w3, store, "Greeter", ADDR_B, private_keys=[KEY0])
    by_abi = get_contract_at(w3, store, GREET_ABI, ADDR_B, private_keys=[KEY0])
    assert by_name.address == by_abi.address == Web3.to_checksum_address(ADDR_B)


def selector(signature):
    return Web3.to_hex(Web3.keccak(text=signature)[:4])


def test_get_contract_at_binds_first_signer(node_w3):
    greeter = get_contract_at(node_w3, None, GREETER_ABI, ADDR_B)
    assert isinstance(greeter, ContractHandle)
    assert greeter.signer.address == Web3.to_checksum_address(NODE_ACCOUNT)

    tx_hash = greeter.transact("setGreeting", "hola")
    assert tx_hash == "0x" + "02" * 32

    [tx] = node_w3.eth.sent
    assert tx["from"] == Web3.to_checksum_address(NODE_ACCOUNT)
    assert tx["to"] == Web3.to_checksum_address(ADDR_B)
    assert tx["data"].startswith(selector("setGreeting(string)"))


def test_get_contract_at_with_custom_signer(node_w3):
    other = Signer(node_w3, Web3.to_checksum_address(ADDR_A))
    greeter = get_contract_at(node_w3, None, GREETER_ABI, ADDR_B, signer=other)
    assert greeter.signer is other

    greeter.transact("setGreeting", "hola")
    assert node_w3.eth.sent[0]["from"] == Web3.to_checksum_address(ADDR_A)


def test_get_contract_at_from_artifact_default_key(w3, artifact_dict):
    artifact = Artifact.from_dict(artifact_dict(abi=GREETER_ABI))
    greeter = get_contract_at_from_artifact(w3, artifact, ADDR_B, private_keys=[KEY0, KEY1])
    assert greeter.signer.address == Account.from_key(KEY0).address
    assert greeter.signer.is_local

    tx = greeter.build_transaction("setGreeting", "hola")
    assert tx["to"] == Web3.to_checksum_address(ADDR_B)
    assert tx["data"].startswith(selector("setGreeting(string)"))
    assert "value" not in tx


def test_handle_connect_switches_signer(node_w3):
    greeter = get_contract_at(node_w3, None, GREETER_ABI, ADDR_B)
    other = Signer(node_w3, Web3.to_checksum_address(ADDR_A))

    switched = greeter.connect(other)
    assert switched.signer is other
    assert greeter.signer.address == Web3.to_checksum_address(NODE_ACCOUNT)
    assert switched.address == greeter.address


def test_transact_without_signer(w3):
    greeter = ContractFactory(w3, GREETER_ABI, "0x6080604052").attach(ADDR_B)
    assert greeter.signer is None
    with pytest.raises(ThorPluginError, match="Cannot send setGreeting"):
        greeter.transact("setGreeting", "hola")


def test_attached_contract_keeps_factory_signer(w3, signer):
    factory = get_contract_factory_from_abi(w3, GREETER_ABI, "0x6080604052", signer)
    greeter = factory.attach(ADDR_B)
    assert greeter.signer is signer
