# infra/aggregator.py

from __future__ import annotations

import asyncio
import json
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import aiohttp

from arbscan import config
from arbscan.routes import InvalidInput
from arbscan.units import format_units

log = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)


class NetworkError(Exception):
    """Pricing request failed in transport or with a non-success status."""


class AggregatorError(NetworkError):
    def __init__(
        self,
        status: Optional[int],
        status_text: str = "",
        api_message: str = "",
        *,
        url: str = "",
    ) -> None:
        self.status = status
        self.status_text = str(status_text or "")
        self.api_message = str(api_message or "")
        self.url = url
        super().__init__(self.describe())

    def describe(self) -> str:
        if self.status is None:
            return self.status_text or "request failed"
        text = f"{self.status}: {self.status_text}"
        if self.api_message:
            text += f" ({self.api_message})"
        return text


@dataclass(frozen=True)
class TokenInfo:
    symbol: str
    decimals: int
    address: str


@dataclass(frozen=True)
class Quote:
    from_token: TokenInfo
    to_token: TokenInfo
    from_amount: int
    to_amount: int
    protocols: List[Any]
    estimated_gas: Optional[int] = None


def _token_info(raw: Any, label: str) -> TokenInfo:
    if not isinstance(raw, dict):
        raise InvalidInput(f"quote is missing {label}")
    try:
        return TokenInfo(
            symbol=str(raw.get("symbol") or ""),
            decimals=int(raw.get("decimals")),
            address=str(raw.get("address") or ""),
        )
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"bad {label} metadata: {raw!r}") from e


def parse_quote(data: Any) -> Quote:
    if not isinstance(data, dict):
        raise InvalidInput("quote response is not an object")
    try:
        from_amount = int(str(data.get("fromTokenAmount")))
        to_amount = int(str(data.get("toTokenAmount")))
        gas = data.get("estimatedGas")
        estimated_gas = int(str(gas)) if gas is not None else None
    except (TypeError, ValueError) as e:
        raise InvalidInput("quote amounts and estimatedGas must be integers") from e
    return Quote(
        from_token=_token_info(data.get("fromToken"), "fromToken"),
        to_token=_token_info(data.get("toToken"), "toToken"),
        from_amount=from_amount,
        to_amount=to_amount,
        protocols=list(data.get("protocols") or []),
        estimated_gas=estimated_gas,
    )


def _api_message(body: Any) -> str:
    if isinstance(body, dict):
        for key in ("error", "description", "message"):
            if body.get(key):
                return str(body[key])
        return ""
    return str(body or "").strip()[:200]


class AggregatorClient:
    """Async client for the aggregator quote endpoint with:
    - persistent aiohttp session
    - explicit per-request timeout
    - retries + exponential backoff for rate limits and 5xx
    """

    def __init__(
        self,
        base_url: str = config.AGGREGATOR_URL,
        chain_id: int = config.CHAIN_ID,
        *,
        protocols: Optional[Sequence[str]] = None,
        main_route_parts: Optional[int] = config.MAIN_ROUTE_PARTS,
        timeout_s: float = config.REQUEST_TIMEOUT_S,
        max_retries: int = config.REQUEST_RETRY_COUNT,
        backoff_base_s: float = config.REQUEST_BACKOFF_BASE_S,
    ) -> None:
        self.base_url = str(base_url).rstrip("/")
        self.chain_id = int(chain_id)
        self.protocols = [str(p).strip() for p in (protocols or []) if str(p).strip()]
        self.main_route_parts = int(main_route_parts) if main_route_parts else None
        self.timeout_s = float(timeout_s)
        self.max_retries = max(0, int(max_retries))
        self.backoff_base_s = float(backoff_base_s)
        self._session: Optional[aiohttp.ClientSession] = None
        self.requests = 0
        self.failures = 0

    async def __aenter__(self) -> "AggregatorClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session and not self._session.closed:
            return self._session
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=10, ttl_dns_cache=300),
            headers={"Accept": "application/json"},
        )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def quote_url(self) -> str:
        return f"{self.base_url}/{self.chain_id}/quote"

    def quote_params(
        self,
        from_token: str,
        to_token: str,
        amount: Union[int, str],
        *,
        constrained: bool = True,
    ) -> Dict[str, str]:
        params = {
            "fromTokenAddress": str(from_token),
            "toTokenAddress": str(to_token),
            "amount": str(int(amount)),
        }
        if constrained:
            if self.main_route_parts:
                params["mainRouteParts"] = str(self.main_route_parts)
            if self.protocols:
                params["protocols"] = ",".join(self.protocols)
        return params

    async def _get_json(self, url: str, params: Dict[str, str]) -> Any:
        session = await self._get_session()
        last_err: Optional[AggregatorError] = None

        for attempt in range(self.max_retries + 1):
            self.requests += 1
            t0 = time.perf_counter()
            try:
                async def _do():
                    async with session.get(url, params=params) as resp:
                        # Proxies can answer with non-UTF-8 bodies; never fail on decoding.
                        text = (await resp.read()).decode("utf-8", errors="replace")
                        try:
                            body = json.loads(text)
                        except ValueError:
                            body = text
                        return resp.status, resp.reason, body

                status, reason, body = await asyncio.wait_for(_do(), timeout=self.timeout_s)
                dt_ms = (time.perf_counter() - t0) * 1000.0
                log.debug("GET %s %s -> %s in %.0fms", url, params, status, dt_ms)
                if status < 400:
                    return body
                last_err = AggregatorError(status, reason or "", _api_message(body), url=url)
                if status not in RETRY_STATUSES:
                    break
            except asyncio.TimeoutError:
                last_err = AggregatorError(None, f"timeout ({self.timeout_s}s)", url=url)
            except aiohttp.ClientError as e:
                last_err = AggregatorError(None, f"{type(e).__name__}: {e}", url=url)

            if attempt < self.max_retries:
                sleep_s = (self.backoff_base_s * (2 ** attempt)) + random.random() * 0.25
                if last_err is not None and last_err.status == 429:
                    sleep_s += float(config.RATE_LIMIT_BACKOFF_S)
                log.warning("quote request failed (%s), retry %d in %.2fs", last_err, attempt + 1, sleep_s)
                await asyncio.sleep(sleep_s)

        self.failures += 1
        if last_err is None:
            last_err = AggregatorError(None, "request failed", url=url)
        raise last_err

    async def get_quote(self, from_token: str, to_token: str, amount: Union[int, str]) -> Quote:
        """Quote ``amount`` (smallest units) of ``from_token`` into ``to_token``.

        Raises AggregatorError when the request fails and InvalidInput when the
        response does not look like a quote.
        """
        params = self.quote_params(from_token, to_token, amount)
        data = await self._get_json(self.quote_url(), params)
        return parse_quote(data)

    async def get_price(
        self,
        from_token: str,
        to_token: str,
        amount: Optional[Union[int, str]] = None,
    ) -> float:
        """Unconstrained spot quote, ``to`` amount read at 18 decimals.

        Only the first 9 characters of the formatted amount are kept, so this
        is a rough price and not for sizing trades.
        """
        if amount is None:
            amount = 10 ** 18
        params = self.quote_params(from_token, to_token, amount, constrained=False)
        data = await self._get_json(self.quote_url(), params)
        quote = parse_quote(data)
        text = f"{format_units(quote.to_amount, 18):f}"
        return float(text[:9])
