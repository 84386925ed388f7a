"""Best-hop route extraction from an aggregator quote.

The quote API describes a swap as ``protocols[path][hop][option]``: a list of
parallel paths, each a list of hops, each hop a list of liquidity sources with
the percentage ``part`` of volume routed through them. We only report the
primary path and, for every hop, the source carrying the largest part.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from arbscan import config


class InvalidInput(ValueError):
    """Quote decomposition is malformed."""


@dataclass(frozen=True)
class HopOption:
    name: str
    part: int
    from_token_address: str
    to_token_address: str


@dataclass(frozen=True)
class RouteStep:
    name: str
    to_token_address: str


Route = List[RouteStep]
RawOption = Union[HopOption, Mapping[str, Any]]


def parse_hop_option(raw: RawOption) -> HopOption:
    if isinstance(raw, HopOption):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidInput(f"hop option must be an object, got {type(raw).__name__}")
    name = raw.get("name")
    to_addr = raw.get("toTokenAddress")
    if not name or not to_addr:
        raise InvalidInput(f"hop option is missing name/toTokenAddress: {dict(raw)!r}")
    part = raw.get("part", 0)
    # bool is an int subclass; "part": true is not a share.
    if isinstance(part, bool) or not isinstance(part, (int, float)) or int(part) != part:
        raise InvalidInput(f"hop option part must be an integer, got {part!r}")
    if part < 0 or part > 100:
        raise InvalidInput(f"hop option part out of range 0..100: {part}")
    return HopOption(
        name=str(name),
        part=int(part),
        from_token_address=str(raw.get("fromTokenAddress") or ""),
        to_token_address=str(to_addr),
    )


def best_option(hop: Sequence[RawOption]) -> HopOption:
    """Option with the largest part; the first one wins a tie.

    The running maximum starts at 0, so a hop where every part is 0 yields its
    first option.
    """
    if isinstance(hop, (str, bytes)) or not isinstance(hop, Sequence):
        raise InvalidInput(f"hop must be a list of options, got {type(hop).__name__}")
    if not hop:
        raise InvalidInput("hop has no options")
    options = [parse_hop_option(o) for o in hop]
    max_part = 0
    key = 0
    for idx, option in enumerate(options):
        if option.part > max_part:
            max_part = option.part
            key = idx
    return options[key]


def extract_route(decomposition: Sequence[Sequence[Sequence[RawOption]]]) -> Route:
    """Simplified route for the primary path of a quote.

    Only ``decomposition[0]`` is considered; parallel paths are dropped.
    Raises InvalidInput when there is no primary path or it has no hops.
    """
    if not isinstance(decomposition, Sequence) or isinstance(decomposition, (str, bytes)):
        raise InvalidInput("quote decomposition must be a list of paths")
    if not decomposition:
        raise InvalidInput("quote decomposition has no primary path")
    main_path = decomposition[0]
    if isinstance(main_path, (str, bytes)) or not isinstance(main_path, Sequence):
        raise InvalidInput("primary path must be a list of hops")
    if not main_path:
        raise InvalidInput("primary path has no hops")

    route: Route = []
    for hop in main_path:
        best = best_option(hop)
        route.append(RouteStep(name=best.name, to_token_address=best.to_token_address))
    return route


def route_pretty(route: Optional[Route], symbol_for: Optional[Callable[[str], str]] = None) -> str:
    if not route:
        return "-"
    sym = symbol_for or config.token_symbol
    return "→".join(f"{step.name}({sym(step.to_token_address)})" for step in route)
