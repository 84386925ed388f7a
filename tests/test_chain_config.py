import json
from pathlib import Path

import pytest

from arbscan import config
from arbscan.chain_config import build_chain_config, default_chain_config, find_chain_config, load_chain_config


def test_load_chain_config_polygon() -> None:
    cfg = load_chain_config("polygon")
    assert cfg is not None
    assert cfg.chain_id == 137
    assert cfg.token_address("usdc").lower() == config.TOKENS["USDC"].lower()
    assert cfg.decimals("USDC") == 6
    assert cfg.decimals("WETH") == 18
    assert cfg.routers["POLYGON_QUICKSWAP"].lower() == config.ROUTERS["POLYGON_QUICKSWAP"].lower()


def test_file_matches_builtin_tables() -> None:
    cfg = load_chain_config("polygon")
    builtin = default_chain_config()
    assert cfg is not None
    assert dict(cfg.tokens) == dict(builtin.tokens)
    assert dict(cfg.pools) == dict(builtin.pools)
    assert dict(cfg.routers) == dict(builtin.routers)


def test_load_chain_config_by_id(tmp_path: Path) -> None:
    (tmp_path / "80001.json").write_text(
        json.dumps({"chain_id": 80001, "name": "mumbai", "tokens": {"wmatic": "0x" + "ab" * 20}}),
        encoding="utf-8",
    )
    cfg = load_chain_config(chain_id=80001, base_dir=tmp_path)
    assert cfg is not None
    assert cfg.name == "mumbai"
    assert cfg.token_address("WMATIC").lower() == "0x" + "ab" * 20


def test_find_chain_config_by_id(tmp_path: Path) -> None:
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "mumbai.json").write_text(json.dumps({"chain_id": 80001}), encoding="utf-8")
    cfg = find_chain_config(80001, base_dir=tmp_path)
    assert cfg is not None
    assert cfg.name == "mumbai"
    assert find_chain_config(1, base_dir=tmp_path) is None
    assert find_chain_config(137).name == "polygon"

def test_missing_chain_returns_none(tmp_path: Path) -> None:
    assert load_chain_config("nope", base_dir=tmp_path) is None


def test_tables_are_read_only() -> None:
    cfg = default_chain_config()
    with pytest.raises(TypeError):
        cfg.tokens["EVIL"] = "0x" + "00" * 20  # type: ignore[index]


def test_invalid_address_rejected() -> None:
    with pytest.raises(ValueError):
        build_chain_config({"chain_id": 137, "tokens": {"BAD": "0x1234"}})


def test_pool_lookup_either_orientation() -> None:
    cfg = default_chain_config()
    assert cfg.pool("USDC", "DAI") == cfg.pool("DAI", "USDC")
    assert cfg.pool("WETH", "DAI") is None


def test_symbol_for_address() -> None:
    cfg = default_chain_config()
    assert cfg.symbol_for(config.TOKENS["WETH"].upper().replace("0X", "0x")) == "WETH"
    assert cfg.symbol_for(config.NATIVE_TOKEN) == "MATIC"
