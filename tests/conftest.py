import json

import pytest


def placeholder(ch: str) -> str:
    """A solc-style 20-byte library placeholder: __$<34 hex>$__"""
    return "__$" + ch * 34 + "$__"


# 0x 6080 <Math:20 bytes> 60 <Str:20 bytes> 00  -> Math at byte 2, Str at byte 23, 44 bytes total
TWO_LIB_BYTECODE = "0x6080" + placeholder("a") + "60" + placeholder("b") + "00"
TWO_LIB_REFS = {
    "contracts/Math.sol": {"Math": [{"start": 2, "length": 20}]},
    "contracts/Str.sol": {"Str": [{"start": 23, "length": 20}]},
}


@pytest.fixture
def artifact_dict():
    def build(bytecode="0x6080604052", link_references=None, name="Greeter", source="contracts/Greeter.sol", abi=None):
        return {
            "_format": "hh-sol-artifact-1",
            "contractName": name,
            "sourceName": source,
            "abi": abi if abi is not None else [],
            "bytecode": bytecode,
            "deployedBytecode": bytecode,
            "linkReferences": link_references or {},
            "deployedLinkReferences": {},
        }

    return build


@pytest.fixture
def two_lib_artifact(artifact_dict):
    from thorlink.artifacts import Artifact

    return Artifact.from_dict(artifact_dict(TWO_LIB_BYTECODE, TWO_LIB_REFS))


@pytest.fixture
def write_artifact(tmp_path):
    """Write an artifact dict where Hardhat would put it and return the path."""
    def write(data, root=None):
        root = root or tmp_path / "artifacts"
        p = root / data["sourceName"] / f"{data['contractName']}.json"
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(data))
        return p

    return write
