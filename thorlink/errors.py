"""
thorlink/errors.py

Exception types raised by the linker and the Thor helpers.

Linking failures are all LinkError (a ValueError) so callers can treat any of
them as "the deployment input is wrong". Each subclass maps to one fix:
- InvalidAddress        -> fix the address string
- UnknownLibrary        -> remove or correct the key
- AmbiguousLibraryName  -> use the fully qualified name
- DuplicateLinkTarget   -> drop one of the two keys
- IncompleteLinking     -> supply the missing addresses
"""

from __future__ import annotations

from typing import Any

MAX_VALUE_REPR = 80


def bullet_list(names: list[str]) -> str:
    return "\n".join(f"* {n}" for n in names)


def short_repr(value: Any) -> str:
    """repr() bounded to MAX_VALUE_REPR characters."""
    text = value if isinstance(value, str) else repr(value)
    if len(text) > MAX_VALUE_REPR:
        return text[: MAX_VALUE_REPR - 3] + "..."
    return text


class ThorPluginError(RuntimeError):
    pass


class InvalidArtifact(ThorPluginError):
    pass


class AbstractContractError(ThorPluginError):
    def __init__(self, contract_name: str) -> None:
        self.contract_name = contract_name
        super().__init__(
            f"You are trying to create a contract factory for the contract {contract_name}, "
            "which is abstract and can't be deployed.\n"
            f"If you want to call a contract using {contract_name} as its interface "
            "use get_contract_at instead."
        )


class LinkError(ValueError):
    pass


class InvalidAddress(LinkError):
    def __init__(self, contract_name: str, key: str, address: Any) -> None:
        self.key = key
        self.address = address
        super().__init__(
            f"You tried to link the contract {contract_name} with the library {key}, "
            f"but provided this invalid address: {short_repr(address)}"
        )


class UnknownLibrary(LinkError):
    def __init__(self, contract_name: str, key: str, available: list[str]) -> None:
        self.key = key
        self.available = available
        if available:
            detail = "The libraries needed are:\n" + bullet_list(available)
        else:
            detail = "This contract doesn't need linking any libraries."
        super().__init__(
            f"You tried to link the contract {contract_name} with {key}, "
            f"which is not one of its libraries.\n{detail}"
        )


class AmbiguousLibraryName(LinkError):
    def __init__(self, contract_name: str, key: str, candidates: list[str]) -> None:
        self.key = key
        self.candidates = candidates
        super().__init__(
            f"The library name {key} is ambiguous for the contract {contract_name}.\n"
            "It may resolve to one of the following libraries:\n"
            f"{bullet_list(candidates)}\n\n"
            "To fix this, choose one of these fully qualified library names and replace where appropriate."
        )


class DuplicateLinkTarget(LinkError):
    def __init__(self, fq_name: str, keys: tuple[str, str]) -> None:
        self.fq_name = fq_name
        self.keys = keys
        super().__init__(
            f"The library names {keys[0]} and {keys[1]} refer to the same library ({fq_name}) "
            "and were given as two separate library links.\n"
            "Remove one of them and review your library links before proceeding."
        )


class IncompleteLinking(LinkError):
    def __init__(self, contract_name: str, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            f"The contract {contract_name} is missing links for the following libraries:\n"
            f"{bullet_list(missing)}"
        )
