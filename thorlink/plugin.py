"""
thorlink/plugin.py

Connection lifecycle for a Thor node plus helpers bound to that connection.

    with ThorPlugin(load_config()) as thor:
        Greeter = thor.helpers.get_contract_factory("Greeter")
        greeter = Greeter.deploy()

helpers raises ThorPluginError until connect() has succeeded. The HTTP session
is owned by the plugin and closed by close().
"""

from __future__ import annotations

from typing import Any, Optional, Union

import requests
from web3 import Web3

from thorlink import factory
from thorlink.artifacts import Artifact, ArtifactStore
from thorlink.config import ThorConfig
from thorlink.errors import ThorPluginError
from thorlink.factory import ContractFactory, ContractHandle, SignerOrOptions
from thorlink.signers import Signer, get_signer, get_signers


class Helpers:
    """Signer and contract helpers with the plugin's w3, keys and artifact store already applied."""

    def __init__(self, w3: Web3, config: ThorConfig, store: ArtifactStore) -> None:
        self.w3 = w3
        self.config = config
        self.store = store

    def get_signers(self) -> list[Signer]:
        return get_signers(self.w3, self.config.private_keys)

    def get_signer(self, address: str) -> Signer:
        return get_signer(self.w3, address, self.config.private_keys)

    def get_contract_factory(self, name: str, options: Optional[SignerOrOptions] = None) -> ContractFactory:
        return factory.get_contract_factory(self.w3, self.store, name, options, self.config.private_keys)

    def get_contract_factory_from_artifact(
        self, artifact: Artifact, options: Optional[SignerOrOptions] = None
    ) -> ContractFactory:
        return factory.get_contract_factory_from_artifact(self.w3, artifact, options, self.config.private_keys)

    def get_contract_factory_from_abi(
        self, abi: list[dict[str, Any]], bytecode: str, signer: Optional[Signer] = None
    ) -> ContractFactory:
        return factory.get_contract_factory_from_abi(self.w3, abi, bytecode, signer, self.config.private_keys)

    def get_contract_at(
        self, name_or_abi: Union[str, list[dict[str, Any]]], address: str, signer: Optional[Signer] = None
    ) -> ContractHandle:
        return factory.get_contract_at(self.w3, self.store, name_or_abi, address, signer, self.config.private_keys)

    def get_contract_at_from_artifact(
        self, artifact: Artifact, address: str, signer: Optional[Signer] = None
    ) -> ContractHandle:
        return factory.get_contract_at_from_artifact(self.w3, artifact, address, signer, self.config.private_keys)


class ThorPlugin:
    def __init__(self, config: ThorConfig, store: Optional[ArtifactStore] = None) -> None:
        self.config = config
        self.store = store or ArtifactStore(config.artifacts_dir)
        self.w3: Optional[Web3] = None
        self._session: Optional[requests.Session] = None
        self._helpers: Optional[Helpers] = None

    def connect(self) -> None:
        session = requests.Session()
        w3 = Web3(Web3.HTTPProvider(self.config.url, session=session))
        if not w3.is_connected():
            session.close()
            raise ThorPluginError(f"Cannot connect to the Thor node using url: {self.config.url}")
        self.w3 = w3
        self._session = session
        self._helpers = Helpers(w3, self.config, self.store)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
        self._session = None
        self.w3 = None
        self._helpers = None

    @property
    def connected(self) -> bool:
        return self._helpers is not None

    @property
    def helpers(self) -> Helpers:
        if self._helpers is None:
            raise ThorPluginError("The Thor plugin is not connected; call connect() first")
        return self._helpers

    def __enter__(self) -> "ThorPlugin":
        self.connect()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
