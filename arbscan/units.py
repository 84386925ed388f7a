# arbscan/units.py

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Union

Number = Union[int, float, str, Decimal]

# uint256 has 78 digits; keep every conversion exact.
_PRECISION = 80


def _to_decimal(value: Number) -> Decimal:
    # floats go through repr() so 0.1 stays 0.1 rather than its binary expansion
    try:
        if isinstance(value, float):
            return Decimal(repr(value))
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"not a number: {value!r}") from e


def parse_units(value: Number, decimals: int) -> int:
    """Whole-token amount -> smallest-unit integer (exact)."""
    d = _to_decimal(value)
    if not d.is_finite():
        raise ValueError(f"not a finite amount: {value!r}")
    if d < 0:
        raise ValueError(f"negative amount: {value!r}")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = d.scaleb(int(decimals))
        if scaled != scaled.to_integral_value():
            raise ValueError(f"{value!r} has more than {decimals} decimals")
        return int(scaled)


def format_units(amount: Union[int, str], decimals: int) -> Decimal:
    """Smallest-unit integer -> whole-token Decimal (exact)."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(int(amount)).scaleb(-int(decimals))


def truncate(value: Number, places: int = 2) -> Decimal:
    """Cut to ``places`` decimals without rounding.

    Display amounts are truncated on purpose; 0.999 shows as 0.99.
    """
    d = _to_decimal(value)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return d.quantize(Decimal(1).scaleb(-int(places)), rounding=ROUND_DOWN)


def to_display(amount: Union[int, str], decimals: int, places: int = 2) -> str:
    return f"{truncate(format_units(amount, decimals), places):.{int(places)}f}"
