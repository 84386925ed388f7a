# arbscan/config.py
# NOTE:
# Values here are defaults. Per-run overrides come from arbscan_config.json,
# the environment (.env is loaded by run_scan.py) or CLI flags.

# 1inch quote API (v4.0). The chain id is appended as a path segment.
AGGREGATOR_URL = "https://api.1inch.exchange/v4.0"

# Polygon PoS
CHAIN_NAME = "polygon"
CHAIN_ID = 137

# Liquidity sources the aggregator may route through (empty == any).
PROTOCOLS = [
    "POLYGON_SUSHISWAP",
    "POLYGON_QUICKSWAP",
    "POLYGON_APESWAP",
    "POLYGON_JETSWAP",
    "POLYGON_WAULTSWAP",
    "POLYGON_DODO",
    "POLYGON_DODO_V2",
]

# Cap on the number of parallel splits of the main route.
MAIN_ROUTE_PARTS = 50

# Round-trip sizing, in whole units of the "from" token.
INITIAL_AMOUNT = 1000.0
# Reverse leg must return more than INITIAL_AMOUNT + DIFF_AMOUNT to count.
DIFF_AMOUNT = 1.0

# HTTP timeouts (seconds) and retry policy for the pricing API.
REQUEST_TIMEOUT_S = 10.0
REQUEST_RETRY_COUNT = 2
REQUEST_BACKOFF_BASE_S = 0.5
# Extra sleep added to the backoff after a 429.
RATE_LIMIT_BACKOFF_S = 1.0

# Pause between scan rounds.
SCAN_INTERVAL_S = 5.0

# Native MATIC placeholder used by the aggregator.
NATIVE_TOKEN = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"
AAVE_ADDRESS_PROVIDER = "0xd05e3E715d945B59290df0ae8eF85c1BdB684744"
AGGREGATOR_ROUTER = "0x11111112542D85B3EF69AE05771c2dCCff4fAa26"

TOKENS = {
    "DAI": "0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063",
    "WETH": "0x7ceb23fd6bc0add59e62ac25578270cff1b9f619",
    "USDC": "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
    "USDT": "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
    "WMATIC": "0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270",
}

# Fast decimals lookup (avoid API calls)
TOKEN_DECIMALS = {
    "DAI": 18,
    "WETH": 18,
    "USDC": 6,
    "USDT": 6,
    "WMATIC": 18,
}

# DODO V2 pools keyed by "BASE_QUOTE".
DODO_V2_POOLS = {
    "USDC_DAI": "0xaaE10Fa31E73287687ce56eC90f81A800361B898",
    "USDT_DAI": "0xDa43a4aAB20D313Ab3AA07d8E09f3521F32a3D83",
    "WETH_USDC": "0x5333Eb1E32522F1893B7C9feA3c263807A02d561",
    "WMATIC_USDT": "0x2144EE9e47998E0d7Ea990252d6Fe63107a31018",
    "WMATIC_USDC": "0x10Dd6d8A29D489BEDE472CC1b22dc695c144c5c7",
    "WMATIC_WETH": "0xC877D7BbCB5b40C3F3d7e7E0d0DA6220BEE027a1",
    "USDC_USDT": "0x56FF5E27d40FBF746ADaa3DA820ADb2056F225E7",
}

# Uniswap V2-style routers keyed by aggregator protocol id.
ROUTERS = {
    "POLYGON_SUSHISWAP": "0x1b02dA8Cb0d097eB8D57A175b88c7D8b47997506",
    "POLYGON_QUICKSWAP": "0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff",
    "POLYGON_APESWAP": "0xC0788A3aD43d79aa53B09c2EaCc313A787d1d607",
    "POLYGON_JETSWAP": "0x5C6EC38fb0e2609672BDf628B1fD605A523E5923",
    "POLYGON_POLYCAT": "0x94930a328162957FF1dd48900aF67B5439336cBD",
    "POLYGON_WAULTSWAP": "0x3a1D87f206D12415f5b0A33E786967680AAb4f6d",
}

# Default pairs scanned as "FROM/TO" (round trip FROM -> TO -> FROM).
PAIRS = [
    "USDC/WETH",
    "USDC/WMATIC",
    "USDC/DAI",
    "USDT/WETH",
    "USDT/WMATIC",
    "DAI/WETH",
]

# Fast reverse lookup (address -> symbol). Lower-case for stable comparisons.
TOKEN_BY_ADDR = {str(addr).lower(): sym for sym, addr in TOKENS.items()}


def _norm_token(token: str) -> str:
    return str(token).strip()


def token_symbol(token: str) -> str:
    """Return symbol for known token, or a short address string."""
    t = _norm_token(token)
    if not t:
        return ""
    t_up = t.upper()
    if t_up in TOKENS:
        return t_up
    sym = TOKEN_BY_ADDR.get(t.lower())
    if sym:
        return sym
    if t.lower() == NATIVE_TOKEN:
        return "MATIC"
    if t.startswith("0x") and len(t) > 10:
        return t[:6] + "..." + t[-4:]
    return t

