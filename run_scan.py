# run_scan.py

import argparse
import asyncio
import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from colorama import just_fix_windows_console
from dotenv import load_dotenv

from arbscan import config, report
from arbscan.chain_config import ChainConfig, default_chain_config, find_chain_config, load_chain_config
from arbscan.checker import CheckResult, Token, check_arbitrage, pairs_from_symbols
from arbscan.logs import configure_logging
from infra.aggregator import AggregatorClient

log = logging.getLogger("run_scan")


@dataclass
class Settings:
    # Network / API
    chain: str = config.CHAIN_NAME
    chain_id: int = config.CHAIN_ID
    api_base_url: str = config.AGGREGATOR_URL
    protocols: Tuple[str, ...] = tuple(config.PROTOCOLS)
    main_route_parts: int = config.MAIN_ROUTE_PARTS

    # Round trip sizing (whole "from" tokens)
    initial_amount: float = config.INITIAL_AMOUNT
    diff_amount: float = config.DIFF_AMOUNT
    pairs: Tuple[str, ...] = tuple(config.PAIRS)

    # HTTP
    request_timeout_s: float = config.REQUEST_TIMEOUT_S
    max_retries: int = config.REQUEST_RETRY_COUNT

    # Loop
    interval_s: float = config.SCAN_INTERVAL_S
    iterations: int = 1  # 0 == forever

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    extra: Dict[str, Any] = field(default_factory=dict)


def _split_list(raw: Any) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        items = raw.replace("\n", ",").split(",")
    else:
        items = list(raw)
    return tuple(str(x).strip() for x in items if str(x).strip())


_TUPLE_FIELDS = ("protocols", "pairs")


def _apply(s: Settings, raw: Dict[str, Any]) -> None:
    known = {f.name: f for f in fields(Settings) if f.name != "extra"}
    for k, v in raw.items():
        if v is None:
            continue
        if k not in known:
            s.extra[k] = v
            continue
        if k in _TUPLE_FIELDS:
            setattr(s, k, _split_list(v))
            continue
        current = getattr(s, k)
        if isinstance(current, int):
            setattr(s, k, int(v))
        elif isinstance(current, float):
            setattr(s, k, float(v))
        else:
            setattr(s, k, v)


def load_settings(path: Optional[str] = None) -> Settings:
    """Defaults <- JSON file <- environment."""
    s = Settings()
    path = path or os.getenv("ARBSCAN_CONFIG", "arbscan_config.json")
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: expected a JSON object")
        _apply(s, raw)

    env = {
        "chain": os.getenv("CHAIN_NAME"),
        "chain_id": os.getenv("CHAIN_ID"),
        "api_base_url": os.getenv("AGGREGATOR_URL"),
        "protocols": os.getenv("PROTOCOLS"),
        "initial_amount": os.getenv("INITIAL_AMOUNT"),
        "diff_amount": os.getenv("DIFF_AMOUNT"),
        "request_timeout_s": os.getenv("REQUEST_TIMEOUT_S"),
    }
    _apply(s, {k: v for k, v in env.items() if v not in (None, "")})
    return s


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Round-trip arbitrage scan over an aggregator quote API")
    parser.add_argument("--config", default=None, help="settings JSON (default: $ARBSCAN_CONFIG or arbscan_config.json)")
    parser.add_argument("--chain", default=None, help="chain config name under configs/chains")
    parser.add_argument("--pair", action="append", dest="pairs", help="FROM/TO, repeatable")
    parser.add_argument("--amount", type=float, dest="initial_amount", help="input amount in whole FROM tokens")
    parser.add_argument("--diff", type=float, dest="diff_amount", help="required gain in whole FROM tokens")
    parser.add_argument("--protocols", default=None, help="comma separated protocol allowlist")
    parser.add_argument("--timeout", type=float, dest="request_timeout_s", help="per-request timeout (s)")
    parser.add_argument("--iterations", type=int, help="scan rounds, 0 loops forever")
    parser.add_argument("--interval", type=float, dest="interval_s", help="pause between rounds (s)")
    parser.add_argument("--log-level", dest="log_level", default=None)
    parser.add_argument("--log-file", dest="log_file", default=None)
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> Settings:
    s = load_settings(args.config)
    overrides = {k: v for k, v in vars(args).items() if k != "config"}
    _apply(s, overrides)
    return s


def resolve_chain(s: Settings, base_dir: Optional[Path] = None) -> ChainConfig:
    """Chain tables for ``s.chain_id``; the chain id decides when name and id disagree."""
    chain = load_chain_config(s.chain, s.chain_id, base_dir=base_dir)
    if chain is None or chain.chain_id != s.chain_id:
        chain = find_chain_config(s.chain_id, base_dir=base_dir)
    if chain is None and s.chain_id == config.CHAIN_ID:
        log.warning("no chain file for %s/%s, using built-in tables", s.chain, s.chain_id)
        chain = default_chain_config()
    if chain is None:
        raise ValueError(f"no chain config with chain_id {s.chain_id}")
    return chain


async def run_round(client: Any, pairs: List[Tuple[Token, Token]], s: Settings, chain: ChainConfig) -> List[CheckResult]:
    results: List[CheckResult] = []
    for from_token, to_token in pairs:
        # Sequential on purpose: public aggregator endpoints rate-limit hard.
        res = await check_arbitrage(client, from_token, to_token, s.initial_amount, s.diff_amount)
        report.print_row(res, chain.symbol_for)
        results.append(res)
    return results


async def run(s: Settings, chain: ChainConfig, client: Any) -> List[CheckResult]:
    pairs = pairs_from_symbols(chain, s.pairs)
    results: List[CheckResult] = []
    iteration = 0
    report.print_header()
    while True:
        iteration += 1
        log.debug("round %d: %d pairs", iteration, len(pairs))
        results.extend(await run_round(client, pairs, s, chain))
        if s.iterations and iteration >= s.iterations:
            break
        await asyncio.sleep(max(0.0, float(s.interval_s)))
    return results


async def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    just_fix_windows_console()
    s = settings_from_args(parse_args(argv))
    configure_logging(s.log_level, s.log_file)
    chain = resolve_chain(s)
    log.info(
        "scanning %d pairs on %s (chain %s) amount=%s diff=%s",
        len(s.pairs),
        chain.name,
        chain.chain_id,
        s.initial_amount,
        s.diff_amount,
    )

    results: List[CheckResult] = []
    async with AggregatorClient(
        s.api_base_url,
        chain.chain_id,
        protocols=s.protocols,
        main_route_parts=s.main_route_parts,
        timeout_s=s.request_timeout_s,
        max_retries=s.max_retries,
    ) as client:
        try:
            results = await run(s, chain, client)
        finally:
            log.info("requests=%d failed=%d", client.requests, client.failures)
    print(report.summary(results))
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("🛑 Scan stopped by user")
