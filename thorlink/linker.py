"""
thorlink/linker.py

Links external library addresses into a contract's creation bytecode.

Hardhat artifacts carry a linkReferences table:
  { "<source>": { "<Library>": [ {"start": <byte>, "length": <bytes>}, ... ] } }

Each (source, Library) pair is a declared slot. Linking happens in two steps:
- resolve(): match the user's {name: address} map to the declared slots.
  Keys may be a bare library name ("Lib") or a fully qualified name
  ("contracts/Lib.sol:Lib"). Every slot must be covered exactly once.
- patch(): overwrite every placeholder range with the address bytes.

Nothing is patched unless resolve() succeeds for every slot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Optional

from eth_utils import add_0x_prefix, decode_hex, is_checksum_address, is_checksum_formatted_address, is_hex_address

from thorlink.errors import (
    AmbiguousLibraryName,
    DuplicateLinkTarget,
    IncompleteLinking,
    InvalidAddress,
    InvalidArtifact,
    UnknownLibrary,
)

if TYPE_CHECKING:
    from thorlink.artifacts import Artifact

BYTECODE_PREFIX = "0x"
ADDRESS_BYTES = 20


@dataclass(frozen=True)
class LinkOffset:
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass(frozen=True)
class DeclaredLinkSlot:
    source_name: str
    library_name: str
    offsets: tuple[LinkOffset, ...]

    @property
    def fq_name(self) -> str:
        return f"{self.source_name}:{self.library_name}"

    def matches(self, key: str) -> bool:
        return key == self.library_name or key == self.fq_name


@dataclass(frozen=True)
class ResolvedLink:
    source_name: str
    library_name: str
    address: str

    @property
    def fq_name(self) -> str:
        return f"{self.source_name}:{self.library_name}"


def _link_offset(fq_name: str, ref: Any) -> LinkOffset:
    if not isinstance(ref, dict):
        raise InvalidArtifact(f"Link reference for {fq_name} is not an object: {ref!r}")
    values = []
    for field in ("start", "length"):
        v = ref.get(field)
        # bool is an int subclass
        if not isinstance(v, int) or isinstance(v, bool):
            raise InvalidArtifact(f"Link reference for {fq_name} has an invalid {field}: {v!r}")
        values.append(v)
    return LinkOffset(*values)


def declared_slots(link_references: Mapping[str, Mapping[str, list[dict[str, Any]]]]) -> list[DeclaredLinkSlot]:
    """Flatten an artifact's linkReferences table, keeping its order."""
    slots: list[DeclaredLinkSlot] = []
    for source_name, libraries in link_references.items():
        for library_name, refs in libraries.items():
            offsets = tuple(_link_offset(f"{source_name}:{library_name}", r) for r in refs)
            slots.append(DeclaredLinkSlot(source_name, library_name, offsets))
    return slots


def bytecode_size(bytecode: str) -> int:
    """Number of raw bytes in a 0x-prefixed hex bytecode string."""
    return (len(bytecode) - len(BYTECODE_PREFIX)) // 2


def check_link_references(bytecode: str, slots: list[DeclaredLinkSlot], contract_name: str = "<unnamed>") -> None:
    """
    Validate declared placeholder ranges against the bytecode they point into.

    Ranges must be non-empty, lie inside the bytecode and not overlap each other.
    """
    if not bytecode.startswith(BYTECODE_PREFIX):
        raise InvalidArtifact(f"Bytecode of {contract_name} does not start with {BYTECODE_PREFIX!r}")
    if (len(bytecode) - len(BYTECODE_PREFIX)) % 2:
        raise InvalidArtifact(f"Bytecode of {contract_name} has an odd number of hex digits")

    size = bytecode_size(bytecode)
    ranges: list[tuple[int, int, str]] = []
    for slot in slots:
        for off in slot.offsets:
            if off.start < 0 or off.length <= 0 or off.end > size:
                raise InvalidArtifact(
                    f"Link reference {slot.fq_name} at start={off.start} length={off.length} "
                    f"is outside the {size}-byte bytecode of {contract_name}"
                )
            ranges.append((off.start, off.end, slot.fq_name))

    ranges.sort()
    for (_, prev_end, prev_name), (start, _, name) in zip(ranges, ranges[1:]):
        if start < prev_end:
            raise InvalidArtifact(
                f"Link references {prev_name} and {name} overlap in the bytecode of {contract_name}"
            )


def is_valid_address(address: Any) -> bool:
    """20-byte hex string; mixed case must also pass the EIP-55 checksum."""
    if not isinstance(address, str) or not is_hex_address(address):
        return False
    return not is_checksum_formatted_address(address) or is_checksum_address(add_0x_prefix(address))


def resolve(
    slots: list[DeclaredLinkSlot],
    requests: Optional[Mapping[str, Any]],
    contract_name: str = "<unnamed>",
) -> list[ResolvedLink]:
    """
    Match user link requests to declared slots.

    Returns one ResolvedLink per slot, in request order. Raises on the first
    problem found; a malformed address stops processing immediately.
    """
    requests = requests or {}

    # key that resolved each fully qualified slot, plus the link itself
    resolved: dict[str, tuple[str, ResolvedLink]] = {}

    for key, address in requests.items():
        if not is_valid_address(address):
            raise InvalidAddress(contract_name, key, address)

        matching = [s for s in slots if s.matches(key)]

        if not matching:
            raise UnknownLibrary(contract_name, key, [s.fq_name for s in slots])

        if len(matching) > 1:
            raise AmbiguousLibraryName(contract_name, key, [s.fq_name for s in matching])

        slot = matching[0]

        # Only reachable when the same library is given by both its name and its FQ name.
        if slot.fq_name in resolved:
            first_key = resolved[slot.fq_name][0]
            raise DuplicateLinkTarget(slot.fq_name, (first_key, key))

        resolved[slot.fq_name] = (key, ResolvedLink(slot.source_name, slot.library_name, address))

    if len(resolved) < len(slots):
        missing = [s.fq_name for s in slots if s.fq_name not in resolved]
        raise IncompleteLinking(contract_name, missing)

    return [link for _, link in resolved.values()]


def _fit(raw: bytes, length: int) -> bytes:
    """Left-pad with zero bytes, or keep the rightmost bytes, to exactly length bytes."""
    if length >= len(raw):
        return b"\x00" * (length - len(raw)) + raw
    return raw[len(raw) - length:]


def patch(bytecode: str, links: list[ResolvedLink], slots: list[DeclaredLinkSlot]) -> str:
    """
    Return bytecode with every declared placeholder replaced by its linked address.

    The bytecode body is handled as an array of one-byte cells (two hex digits
    each). Placeholders such as __$...$__ are not valid hex, so the body is
    not decoded. Offsets are raw byte offsets; the 0x prefix is never touched.
    """
    assert bytecode.startswith(BYTECODE_PREFIX), "bytecode must be 0x-prefixed"
    body = bytecode[len(BYTECODE_PREFIX):]
    assert len(body) % 2 == 0, "bytecode must have an even number of hex digits"

    cells = [body[i:i + 2] for i in range(0, len(body), 2)]
    by_name = {s.fq_name: s for s in slots}
    patched: set[str] = set()

    for link in links:
        slot = by_name.get(link.fq_name)
        assert slot is not None, f"no declared slot for {link.fq_name}"
        assert link.fq_name not in patched, f"{link.fq_name} linked twice"

        raw = decode_hex(link.address)
        for off in slot.offsets:
            assert 0 <= off.start and off.end <= len(cells), f"{link.fq_name} range outside bytecode"
            hexed = _fit(raw, off.length).hex()
            cells[off.start:off.end] = [hexed[i:i + 2] for i in range(0, len(hexed), 2)]

        patched.add(link.fq_name)

    assert patched == set(by_name), f"unlinked slots: {sorted(set(by_name) - patched)}"
    return BYTECODE_PREFIX + "".join(cells)


def link_libraries(artifact: "Artifact", libraries: Optional[Mapping[str, Any]] = None) -> str:
    """Resolve then patch an artifact's creation bytecode. Link errors propagate unchanged."""
    slots = artifact.slots
    check_link_references(artifact.bytecode, slots, artifact.contract_name)
    links = resolve(slots, libraries, artifact.contract_name)
    if not slots:
        return artifact.bytecode
    return patch(artifact.bytecode, links, slots)
