# arbscan/checker.py

"""Round-trip arbitrage check: quote A -> B, then B -> A with the proceeds.

Each check is two sequential quotes and one comparison. Whatever goes wrong
inside a check comes back as an error result so the scan loop keeps going.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from arbscan.chain_config import ChainConfig
from arbscan.routes import InvalidInput, Route, extract_route
from arbscan.units import format_units, parse_units, truncate
from infra.aggregator import NetworkError, Quote

log = logging.getLogger(__name__)


class QuoteSource(Protocol):
    async def get_quote(self, from_token: str, to_token: str, amount: Any) -> Quote: ...


@dataclass(frozen=True)
class Token:
    symbol: str
    address: str
    decimals: int


@dataclass(frozen=True)
class CheckResult:
    from_symbol: str
    to_symbol: str
    from_amount: int
    from_decimals: int
    to_amount: Optional[int] = None
    to_decimals: Optional[int] = None
    is_profitable: bool = False
    first_route: Optional[Route] = None
    second_route: Optional[Route] = None
    error: Optional[str] = None
    elapsed_s: float = 0.0
    timestamp: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def difference(self) -> Optional[Decimal]:
        """Round-trip gain in whole ``from`` tokens (each side truncated to 2dp)."""
        if self.to_amount is None or self.to_decimals is None:
            return None
        out = truncate(format_units(self.to_amount, self.to_decimals))
        inp = truncate(format_units(self.from_amount, self.from_decimals))
        return out - inp


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def pairs_from_symbols(chain: ChainConfig, pairs: Sequence[str]) -> List[Tuple[Token, Token]]:
    """Parse "FROM/TO" strings into token pairs using the chain tables."""
    out: List[Tuple[Token, Token]] = []
    for raw in pairs:
        parts = [p.strip().upper() for p in str(raw).replace("-", "/").split("/") if p.strip()]
        if len(parts) != 2 or parts[0] == parts[1]:
            raise ValueError(f"bad pair {raw!r}, expected FROM/TO")
        a, b = parts
        out.append(
            (
                Token(symbol=a, address=chain.token_address(a), decimals=chain.decimals(a)),
                Token(symbol=b, address=chain.token_address(b), decimals=chain.decimals(b)),
            )
        )
    return out


async def check_arbitrage(
    client: QuoteSource,
    from_token: Token,
    to_token: Token,
    initial_amount: float,
    diff_amount: float,
) -> CheckResult:
    start = time.perf_counter()

    def _error(exc: Exception, symbol: str, raw_amount: int, decimals: int, prefix: str = "") -> CheckResult:
        if not prefix and isinstance(exc, InvalidInput):
            prefix = "invalid quote"
        msg = f"{prefix}: {exc}" if prefix else str(exc)
        log.warning("check %s/%s failed: %s", from_token.symbol, to_token.symbol, msg)
        return CheckResult(
            from_symbol=symbol,
            to_symbol=to_token.symbol,
            from_amount=raw_amount,
            from_decimals=decimals,
            error=msg,
            elapsed_s=time.perf_counter() - start,
            timestamp=_now_iso(),
        )

    try:
        amount = parse_units(initial_amount, from_token.decimals)
        # Reverse leg must beat input + diff, both in from-token smallest units.
        threshold = parse_units(Decimal(str(initial_amount)) + Decimal(str(diff_amount)), from_token.decimals)
    except (ValueError, ArithmeticError) as e:
        return _error(e, from_token.symbol, 0, from_token.decimals, prefix="invalid amount")

    try:
        first = await client.get_quote(from_token.address, to_token.address, amount)
        first_route = extract_route(first.protocols)
    except (NetworkError, InvalidInput) as e:
        return _error(e, from_token.symbol, amount, from_token.decimals)

    try:
        second = await client.get_quote(to_token.address, from_token.address, first.to_amount)
        second_route = extract_route(second.protocols)
    except (NetworkError, InvalidInput) as e:
        return _error(e, first.from_token.symbol or from_token.symbol, first.from_amount, first.from_token.decimals)

    is_profitable = second.to_amount > threshold
    if is_profitable:
        log.info(
            "profitable round trip %s->%s: in=%s out=%s",
            from_token.symbol,
            to_token.symbol,
            first.from_amount,
            second.to_amount,
        )
    return CheckResult(
        from_symbol=first.from_token.symbol or from_token.symbol,
        to_symbol=first.to_token.symbol or to_token.symbol,
        from_amount=first.from_amount,
        from_decimals=first.from_token.decimals,
        to_amount=second.to_amount,
        to_decimals=second.to_token.decimals,
        is_profitable=is_profitable,
        first_route=first_route,
        second_route=second_route,
        elapsed_s=time.perf_counter() - start,
        timestamp=_now_iso(),
    )
