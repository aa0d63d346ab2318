"""
thorlink/artifacts.py

Loads Hardhat build artifacts from disk.

Hardhat writes one JSON file per contract:
  artifacts/<sourceName>/<ContractName>.json
next to a <ContractName>.dbg.json pointer and a build-info/ directory, both of
which are skipped here.

Artifacts are validated on load: the shape must match what Hardhat emits and
every link reference must point inside the creation bytecode.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from thorlink.errors import InvalidArtifact, ThorPluginError
from thorlink.linker import DeclaredLinkSlot, check_link_references, declared_slots


def is_artifact(data: Any) -> bool:
    """Shape check for a Hardhat artifact dict."""
    if not isinstance(data, dict):
        return False
    return (
        isinstance(data.get("contractName"), str)
        and isinstance(data.get("sourceName"), str)
        and isinstance(data.get("abi"), list)
        and isinstance(data.get("bytecode"), str)
        and isinstance(data.get("deployedBytecode"), str)
        and data.get("linkReferences") is not None
        and data.get("deployedLinkReferences") is not None
    )


@dataclass(frozen=True)
class Artifact:
    contract_name: str
    source_name: str
    abi: list[dict[str, Any]]
    bytecode: str
    deployed_bytecode: str
    link_references: dict[str, Any]
    deployed_link_references: dict[str, Any]

    @classmethod
    def from_dict(cls, data: Any) -> "Artifact":
        if not is_artifact(data):
            raise InvalidArtifact(
                "You are trying to use an artifact, but you have not passed a valid artifact parameter."
            )
        artifact = cls(
            contract_name=data["contractName"],
            source_name=data["sourceName"],
            abi=data["abi"],
            bytecode=data["bytecode"],
            deployed_bytecode=data["deployedBytecode"],
            link_references=data["linkReferences"],
            deployed_link_references=data["deployedLinkReferences"],
        )
        check_link_references(artifact.bytecode, artifact.slots, artifact.contract_name)
        return artifact

    @property
    def fq_name(self) -> str:
        return f"{self.source_name}:{self.contract_name}"

    @property
    def slots(self) -> list[DeclaredLinkSlot]:
        return declared_slots(self.link_references)

    @property
    def is_abstract(self) -> bool:
        return self.bytecode == "0x"


def load_artifact(path: Union[str, Path]) -> Artifact:
    """Load and validate a single artifact JSON file."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Artifact not found: {path}")
    return Artifact.from_dict(json.loads(p.read_text()))


class ArtifactStore:
    """
    Reads artifacts by contract name, the way hre.artifacts.readArtifact does.

    Accepts either a bare name ("Greeter") or a fully qualified name
    ("contracts/Greeter.sol:Greeter").
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)
        self._cache: dict[str, Artifact] = {}

    def read_artifact(self, name: str) -> Artifact:
        if name not in self._cache:
            self._cache[name] = load_artifact(self._find(name))
        return self._cache[name]

    def artifact_paths(self) -> list[Path]:
        """All contract artifact files under the root, sorted."""
        paths = []
        for p in self.root.rglob("*.json"):
            if "build-info" in p.relative_to(self.root).parts or p.name.endswith(".dbg.json"):
                continue
            paths.append(p)
        return sorted(paths)

    def _find(self, name: str) -> Path:
        if ":" in name:
            source_name, contract_name = name.rsplit(":", 1)
            p = self.root / source_name / f"{contract_name}.json"
            if not p.exists():
                raise FileNotFoundError(f"Artifact for contract {name} not found under {self.root}")
            return p

        matches = [p for p in self.artifact_paths() if p.stem == name]
        if not matches:
            raise FileNotFoundError(f"Artifact for contract {name} not found under {self.root}")
        if len(matches) > 1:
            fq_names = [
                f"{p.parent.relative_to(self.root).as_posix()}:{name}" for p in matches
            ]
            raise ThorPluginError(
                f"There are multiple artifacts for contract {name}, please use a fully qualified name instead:\n"
                + "\n".join(f"* {n}" for n in fq_names)
            )
        return matches[0]
