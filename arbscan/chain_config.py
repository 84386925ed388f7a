from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from web3 import Web3

from arbscan import config

CHAINS_DIR = Path(__file__).resolve().parents[1] / "configs" / "chains"


@dataclass(frozen=True)
class ChainConfig:
    """Read-only address tables for one network.

    Loaded once at start-up and passed to whatever needs addresses; the
    mappings are proxies so nothing downstream can mutate them.
    """

    chain_id: int
    name: str
    native_token: str
    tokens: Mapping[str, str]
    token_decimals: Mapping[str, int]
    pools: Mapping[str, str]
    routers: Mapping[str, str]

    def token_address(self, symbol: str) -> str:
        sym = str(symbol).strip().upper()
        if sym not in self.tokens:
            raise KeyError(f"unknown token {symbol!r} on {self.name}")
        return self.tokens[sym]

    def decimals(self, symbol: str) -> int:
        return int(self.token_decimals.get(str(symbol).strip().upper(), 18))

    def symbol_for(self, address: str) -> str:
        a = str(address).strip().lower()
        for sym, addr in self.tokens.items():
            if addr.lower() == a:
                return sym
        if a == self.native_token.lower():
            return "MATIC"
        return config.token_symbol(address)

    def pool(self, base: str, quote: str) -> Optional[str]:
        """Pool for a pair in either orientation."""
        b = str(base).strip().upper()
        q = str(quote).strip().upper()
        return self.pools.get(f"{b}_{q}") or self.pools.get(f"{q}_{b}")


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None


def _checksum(label: str, value: Any) -> str:
    # Source tables mix lower-case and checksummed entries; checksum from scratch.
    addr = str(value or "").strip().lower()
    if not Web3.is_address(addr):
        raise ValueError(f"invalid address for {label}: {addr!r}")
    return Web3.to_checksum_address(addr)


def _normalize_addresses(raw: Any) -> Dict[str, str]:
    out: Dict[str, str] = {}
    if not isinstance(raw, dict):
        return out
    for k, v in raw.items():
        if not k:
            continue
        key = str(k).strip().upper()
        out[key] = _checksum(key, v)
    return out


def _normalize_token_decimals(raw: Any) -> Dict[str, int]:
    out: Dict[str, int] = {}
    if not isinstance(raw, dict):
        return out
    for k, v in raw.items():
        if not k:
            continue
        dec = int(v)
        if dec < 0 or dec > 36:
            raise ValueError(f"decimals out of range for {k}: {dec}")
        out[str(k).upper()] = dec
    return out


def build_chain_config(data: Dict[str, Any], *, name: str = "") -> ChainConfig:
    chain_id = data.get("chain_id")
    if chain_id is None:
        raise ValueError("chain config is missing chain_id")
    native = str(data.get("native_token") or config.NATIVE_TOKEN).strip().lower()
    return ChainConfig(
        chain_id=int(chain_id),
        name=str(data.get("name") or name or "unknown").strip().lower(),
        native_token=native,
        tokens=MappingProxyType(_normalize_addresses(data.get("tokens"))),
        token_decimals=MappingProxyType(_normalize_token_decimals(data.get("token_decimals"))),
        pools=MappingProxyType(_normalize_addresses(data.get("pools"))),
        routers=MappingProxyType(_normalize_addresses(data.get("routers"))),
    )


def default_chain_config() -> ChainConfig:
    """Chain config built from the tables in arbscan.config."""
    return build_chain_config(
        {
            "chain_id": config.CHAIN_ID,
            "name": config.CHAIN_NAME,
            "native_token": config.NATIVE_TOKEN,
            "tokens": config.TOKENS,
            "token_decimals": config.TOKEN_DECIMALS,
            "pools": config.DODO_V2_POOLS,
            "routers": config.ROUTERS,
        }
    )


def load_chain_config(
    chain_name: Optional[str] = None,
    chain_id: Optional[int] = None,
    *,
    base_dir: Optional[Path] = None,
) -> Optional[ChainConfig]:
    base = Path(base_dir) if base_dir is not None else CHAINS_DIR
    name = str(chain_name or os.getenv("CHAIN_NAME") or "").strip().lower()
    cid = chain_id
    chain_id_env = os.getenv("CHAIN_ID")
    if cid is None and chain_id_env:
        try:
            cid = int(chain_id_env)
        except ValueError:
            cid = None

    candidates: list[Path] = []
    if name:
        candidates.append(base / f"{name}.json")
    if cid is not None:
        candidates.append(base / f"{cid}.json")
    if not candidates:
        candidates.append(base / f"{config.CHAIN_NAME}.json")

    data: Optional[Dict[str, Any]] = None
    for path in candidates:
        if path.exists():
            data = _read_json(path)
            if isinstance(data, dict):
                break
    if not isinstance(data, dict) or not data:
        return None
    return build_chain_config(data, name=name)


def find_chain_config(chain_id: int, *, base_dir: Optional[Path] = None) -> Optional[ChainConfig]:
    """First chain file under ``base_dir`` whose chain_id matches."""
    base = Path(base_dir) if base_dir is not None else CHAINS_DIR
    if not base.is_dir():
        return None
    for path in sorted(base.glob("*.json")):
        data = _read_json(path)
        if not isinstance(data, dict) or data.get("chain_id") is None:
            continue
        try:
            cid = int(data["chain_id"])
        except (TypeError, ValueError):
            continue
        if cid == int(chain_id):
            return build_chain_config(data, name=path.stem)
    return None
