"""
thorlink/link.py

Prints an artifact's creation bytecode with its libraries linked.

Usage:
  python -m thorlink.link <path/to/Artifact.json> [Lib=0xADDR ...]

Keys may be bare library names or fully qualified names:
  python -m thorlink.link artifacts/contracts/Greeter.sol/Greeter.json \
      contracts/Math.sol:Math=0x5FbDB2315678afecb367f032d93F642f64180aa3
"""

import argparse

from thorlink.artifacts import load_artifact
from thorlink.errors import LinkError
from thorlink.linker import link_libraries


def parse_link_args(pairs: list[str]) -> dict[str, str]:
    """Turn ["Lib=0x..", ...] into {"Lib": "0x.."}. Keys keep their command-line order."""
    libraries: dict[str, str] = {}
    for pair in pairs:
        name, sep, address = pair.partition("=")
        if not sep or not name:
            raise SystemExit(f"Invalid library link {pair!r}, expected NAME=ADDRESS")
        if name in libraries:
            raise SystemExit(f"Library {name} given more than once")
        libraries[name] = address
    return libraries


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("artifact", help="Path to a Hardhat artifact JSON file")
    parser.add_argument("links", nargs="*", help="Library links as NAME=ADDRESS")
    args = parser.parse_args()

    artifact = load_artifact(args.artifact)
    try:
        bytecode = link_libraries(artifact, parse_link_args(args.links))
    except LinkError as e:
        raise SystemExit(str(e))

    print(bytecode)


if __name__ == "__main__":
    main()
