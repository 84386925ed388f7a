import pytest
from aiohttp import web
from aiohttp import test_utils

from arbscan.checker import Token, check_arbitrage
from arbscan.routes import InvalidInput
from infra.aggregator import AggregatorClient, AggregatorError, parse_quote

USDC = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"
WETH = "0x7ceb23fd6bc0add59e62ac25578270cff1b9f619"


def _quote_body(from_amount: str, to_amount: str) -> dict:
    return {
        "fromToken": {"symbol": "USDC", "decimals": 6, "address": USDC},
        "toToken": {"symbol": "WETH", "decimals": 18, "address": WETH},
        "fromTokenAmount": from_amount,
        "toTokenAmount": to_amount,
        "protocols": [[[{"name": "POLYGON_QUICKSWAP", "part": 100, "fromTokenAddress": USDC, "toTokenAddress": WETH}]]],
        "estimatedGas": 180000,
    }


def _app(handler) -> web.Application:
    app = web.Application()
    app.router.add_get("/v4.0/137/quote", handler)
    return app


def test_quote_params() -> None:
    client = AggregatorClient("https://api.example/v4.0/", 137, protocols=["A", "B"], main_route_parts=50)
    assert client.quote_url() == "https://api.example/v4.0/137/quote"
    assert client.quote_params(USDC, WETH, 10**9) == {
        "fromTokenAddress": USDC,
        "toTokenAddress": WETH,
        "amount": "1000000000",
        "mainRouteParts": "50",
        "protocols": "A,B",
    }
    bare = AggregatorClient("https://api.example/v4.0", 137, protocols=None, main_route_parts=None)
    assert set(bare.quote_params(USDC, WETH, 1)) == {"fromTokenAddress", "toTokenAddress", "amount"}


def test_parse_quote() -> None:
    q = parse_quote(_quote_body("1000000000", "300000000000000000"))
    assert q.from_token.symbol == "USDC"
    assert q.to_token.decimals == 18
    assert q.to_amount == 3 * 10**17
    assert q.estimated_gas == 180000
    with pytest.raises(InvalidInput):
        parse_quote({"fromTokenAmount": "x"})
    with pytest.raises(InvalidInput):
        parse_quote([])
    bad_gas = _quote_body("1", "2")
    bad_gas["estimatedGas"] = "1.5e5"
    with pytest.raises(InvalidInput):
        parse_quote(bad_gas)
    no_gas = _quote_body("1", "2")
    del no_gas["estimatedGas"]
    assert parse_quote(no_gas).estimated_gas is None


def test_error_describe() -> None:
    assert AggregatorError(400, "Bad Request", "cannot estimate").describe() == "400: Bad Request (cannot estimate)"
    assert AggregatorError(500, "Internal Server Error").describe() == "500: Internal Server Error"
    assert str(AggregatorError(None, "timeout (1.0s)")) == "timeout (1.0s)"


@pytest.mark.asyncio
async def test_get_quote_sends_params() -> None:
    seen = []

    async def handler(request: web.Request) -> web.Response:
        seen.append(dict(request.query))
        return web.json_response(_quote_body(request.query["amount"], "300000000000000000"))

    async with test_utils.TestServer(_app(handler)) as server:
        base = str(server.make_url("/v4.0"))
        async with AggregatorClient(base, 137, protocols=["POLYGON_QUICKSWAP"], max_retries=0) as client:
            quote = await client.get_quote(USDC, WETH, 10**9)

    assert quote.from_amount == 10**9
    assert seen[0]["protocols"] == "POLYGON_QUICKSWAP"
    assert seen[0]["mainRouteParts"] == "50"


@pytest.mark.asyncio
async def test_client_error_not_retried() -> None:
    hits = []

    async def handler(request: web.Request) -> web.Response:
        hits.append(1)
        return web.json_response({"statusCode": 400, "error": "Bad Request", "description": "x"}, status=400)

    async with test_utils.TestServer(_app(handler)) as server:
        base = str(server.make_url("/v4.0"))
        async with AggregatorClient(base, 137, max_retries=3, backoff_base_s=0.0) as client:
            with pytest.raises(AggregatorError) as exc_info:
                await client.get_quote(USDC, WETH, 1)

    assert len(hits) == 1
    assert exc_info.value.status == 400
    assert exc_info.value.api_message == "Bad Request"
    assert client.failures == 1


@pytest.mark.asyncio
async def test_server_error_retried_then_ok() -> None:
    hits = []

    async def handler(request: web.Request) -> web.Response:
        hits.append(1)
        if len(hits) == 1:
            return web.json_response({"error": "busy"}, status=503)
        return web.json_response(_quote_body("1", "2"))

    async with test_utils.TestServer(_app(handler)) as server:
        base = str(server.make_url("/v4.0"))
        async with AggregatorClient(base, 137, max_retries=2, backoff_base_s=0.0) as client:
            quote = await client.get_quote(USDC, WETH, 1)

    assert len(hits) == 2
    assert quote.to_amount == 2


@pytest.mark.asyncio
async def test_get_price_truncates() -> None:
    async def handler(request: web.Request) -> web.Response:
        assert "protocols" not in request.query
        return web.json_response(_quote_body(request.query["amount"], "1234567891234567890"))

    async with test_utils.TestServer(_app(handler)) as server:
        base = str(server.make_url("/v4.0"))
        async with AggregatorClient(base, 137, protocols=["X"], max_retries=0) as client:
            price = await client.get_price(USDC, WETH)

    assert price == pytest.approx(1.2345678)


@pytest.mark.asyncio
async def test_non_utf8_error_body() -> None:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(body=b"\xff\xfe bad gateway \xc3", status=502)

    async with test_utils.TestServer(_app(handler)) as server:
        base = str(server.make_url("/v4.0"))
        async with AggregatorClient(base, 137, max_retries=0) as client:
            with pytest.raises(AggregatorError) as exc_info:
                await client.get_quote(USDC, WETH, 1)
            res = await check_arbitrage(client, Token("USDC", USDC, 6), Token("WETH", WETH, 18), 1000, 1)

    assert exc_info.value.status == 502
    assert "bad gateway" in exc_info.value.api_message
    assert not res.ok
    assert res.error.startswith("502: Bad Gateway")


@pytest.mark.asyncio
async def test_retries_exhausted_raises_last_error() -> None:
    hits = []

    async def handler(request: web.Request) -> web.Response:
        hits.append(1)
        return web.json_response({"error": "boom"}, status=500)

    async with test_utils.TestServer(_app(handler)) as server:
        base = str(server.make_url("/v4.0"))
        async with AggregatorClient(base, 137, max_retries=1, backoff_base_s=0.0) as client:
            with pytest.raises(AggregatorError) as exc_info:
                await client.get_quote(USDC, WETH, 1)

    assert len(hits) == 2
    assert exc_info.value.status == 500
    assert exc_info.value.api_message == "boom"
    assert client.failures == 1
    assert client.requests == 2
