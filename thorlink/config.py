"""
thorlink/config.py

Loads the Thor network configuration from the repo's .env file.

Variables:
- THOR_URL            JSON-RPC endpoint of the Thor node (required)
- THOR_PRIVATE_KEYS   comma-separated private keys used as local signers
- THOR_DELEGATE       fee delegation URL, passed through to callers
- THOR_ARTIFACTS_DIR  Hardhat artifacts root (default: artifacts)
- THOR_TX_TIMEOUT     seconds to wait for a receipt (default: 120)
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from eth_utils import is_hex, remove_0x_prefix

# Always load .env from repo root reliably (no find_dotenv() stack-frame issues)
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)


def _opt(name: str) -> str | None:
    """Fetch an optional environment variable."""
    v = os.getenv(name)
    return v.strip() if v and v.strip() else None


def _env_int(name: str, default: int) -> int:
    """Read an int env var with a default."""
    return int(os.getenv(name, str(default)))


def _as_private_key(x: str) -> str:
    """Basic validation for a 32-byte hex private key."""
    if not is_hex(x) or len(remove_0x_prefix(x)) != 64:
        raise ValueError("Not a private key: expected 32 bytes of hex")
    return x if x.startswith("0x") else "0x" + x


def _split_keys(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(_as_private_key(k.strip()) for k in raw.split(",") if k.strip())


@dataclass(frozen=True)
class ThorConfig:
    url: str
    private_keys: tuple[str, ...] = ()
    delegate: str | None = None
    artifacts_dir: str = "artifacts"
    tx_timeout: int = 120


def load_config() -> ThorConfig:
    """Build a ThorConfig from the environment. THOR_URL is mandatory."""
    url = _opt("THOR_URL")
    if not url:
        raise ValueError("Thor network config not found: set THOR_URL in the environment or .env")

    return ThorConfig(
        url=url,
        private_keys=_split_keys(_opt("THOR_PRIVATE_KEYS")),
        delegate=_opt("THOR_DELEGATE"),
        artifacts_dir=_opt("THOR_ARTIFACTS_DIR") or "artifacts",
        tx_timeout=_env_int("THOR_TX_TIMEOUT", 120),
    )
