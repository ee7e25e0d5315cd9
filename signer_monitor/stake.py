from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any

from .errors import ParseError


USTX_PER_STX = 1_000_000

_DIGITS_RE = re.compile(r"^[0-9]+$")
_TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class StakeVerdict:
    deficient: bool
    difference_abs: int
    # None when the required stake is zero.
    difference_pct: Decimal | None


def parse_ustx(value: Any) -> int:
    """
    Parse a micro-STX amount as returned by the chain API.

    The API encodes large amounts either as JSON integers or as decimal strings.
    Floats are rejected because they cannot carry the full precision.
    """
    if isinstance(value, bool):
        raise ParseError(f"Expected an integer amount, got {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ParseError(f"Amount must not be negative: {value}")
        return value
    if isinstance(value, str):
        s = value.strip()
        if not _DIGITS_RE.match(s):
            raise ParseError(f"Amount is not a non-negative integer: {value!r}")
        return int(s)
    raise ParseError(f"Expected an integer amount, got {type(value).__name__}: {value!r}")


def compare_stake(observed: int, required: int) -> StakeVerdict:
    difference = int(observed) - int(required)
    if required == 0:
        return StakeVerdict(deficient=observed < 0, difference_abs=difference, difference_pct=None)

    digits = len(str(abs(difference))) + len(str(abs(required))) + 10
    with localcontext() as ctx:
        ctx.prec = max(28, digits)
        pct = (Decimal(difference) / Decimal(required) * 100).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)

    return StakeVerdict(deficient=observed < required, difference_abs=difference, difference_pct=pct)


def format_ustx(amount: int) -> str:
    whole, frac = divmod(abs(int(amount)), USTX_PER_STX)
    sign = "-" if amount < 0 else ""
    stx = f"{whole:,}" if not frac else f"{whole:,}.{frac:06d}".rstrip("0")
    return f"{sign}{abs(int(amount))} uSTX ({sign}{stx} STX)"
