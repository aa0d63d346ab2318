"""
thorlink/deploy.py

Deploys a compiled contract to the Thor node configured in .env.

Usage:
  python -m thorlink.deploy <ContractName> [--lib NAME=ADDRESS ...] [--arg VALUE ...]

Constructor arguments are parsed as JSON when possible (numbers, booleans,
lists), otherwise passed through as strings. The first signer deploys.
"""

import argparse
import json
from typing import Any

from thorlink.config import load_config
from thorlink.errors import ThorPluginError
from thorlink.factory import FactoryOptions
from thorlink.link import parse_link_args
from thorlink.plugin import ThorPlugin


def parse_ctor_arg(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("contract", help="Contract name or fully qualified name")
    parser.add_argument("--lib", dest="libs", action="append", default=[], help="Library link NAME=ADDRESS")
    parser.add_argument("--arg", dest="ctor_args", action="append", default=[], help="Constructor argument")
    args = parser.parse_args()

    options = FactoryOptions(libraries=parse_link_args(args.libs))
    ctor_args = [parse_ctor_arg(a) for a in args.ctor_args]

    # LinkError and config errors are ValueErrors
    try:
        cfg = load_config()
        with ThorPlugin(cfg) as thor:
            factory = thor.helpers.get_contract_factory(args.contract, options)

            if factory.signer is None:
                raise SystemExit("No signer available. Set THOR_PRIVATE_KEYS or unlock a node account.")

            print(f"Deploying {args.contract} from {factory.signer.address} ...")
            contract = factory.deploy(*ctor_args, timeout_s=cfg.tx_timeout)
    except (ValueError, ThorPluginError, FileNotFoundError) as e:
        raise SystemExit(str(e))

    print(f"Deployed {args.contract} at {contract.address}")


if __name__ == "__main__":
    main()
