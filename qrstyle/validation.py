"""Fail-fast validation pipeline.

Each field is described by an ordered list of ``(predicate, error)`` rules. The
first predicate that returns False raises its error; later rules may assume the
earlier ones held.
"""

import math
from collections.abc import Callable, Sequence
from typing import Any

Rule = tuple[Callable[[Any], bool], Callable[[Any], Exception]]


def check(value: Any, rules: Sequence[Rule]) -> Any:
    """Run ``value`` through ``rules`` and return it unchanged if all pass."""
    for predicate, make_error in rules:
        if not predicate(value):
            raise make_error(value)
    return value


def parse_int(value: Any) -> int | None:
    """Integer value of an int or a base-10 integer string, else None.

    Booleans and floats are not integers here.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in "+-" else text
        if digits.isascii() and digits.isdigit():
            return int(text)
    return None


def parse_number(value: Any) -> int | float | None:
    """Numeric value of an int, float or numeric string, else None.

    NaN and infinities are rejected. Integral floats come back as int.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        as_int = parse_int(value)
        if as_int is not None:
            return as_int
        text = value.strip()
        if not text.isascii() or "_" in text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value) if value.is_integer() else value
    return None


def is_int(value: Any) -> bool:
    return parse_int(value) is not None
