"""
Formatting helpers: integer token amounts <-> human decimal strings.

Formatting only happens at the output boundary; the simulation core works
on exact integers in each token's smallest unit.
"""

from __future__ import annotations
import re


def add_decimal_point(value: int | str, decimals: int) -> str:
    """
    Insert the decimal point into an integer amount and drop trailing zeros.
    add_decimal_point(1_500_000_000, 9) -> "1.5"
    """
    text = str(value)
    if decimals == 0:
        return text

    negative = text.startswith("-")
    digits = text.lstrip("-").rjust(decimals + 1, "0")
    whole = digits[:-decimals] or "0"
    fraction = digits[-decimals:].rstrip("0")

    out = f"{whole}.{fraction}" if fraction else whole
    return f"-{out}" if negative else out


def string_to_amount(text: str, decimals: int) -> int:
    """
    Parse a human decimal string into the smallest unit, truncating extra digits.
    string_to_amount("123.456", 9) -> 123456000000
    """
    text = text.strip()
    if not re.fullmatch(r"-?\d*(\.\d*)?", text) or text in ("", "-", ".", "-."):
        raise ValueError(f"Not a decimal amount: {text!r}")
    negative = text.startswith("-")
    whole, _, fraction = text.lstrip("-").partition(".")
    combined = (whole or "0") + fraction.ljust(decimals, "0")[:decimals]
    amount = int(combined)
    return -amount if negative else amount


def format_amount(
    value: int,
    decimals: int,
    comma_separator: bool = False,
    max_decimals: int | None = None,
    min_decimals: int = 0,
) -> str:
    result = add_decimal_point(value, decimals)
    whole, _, fraction = result.partition(".")

    if max_decimals is not None and len(fraction) > max_decimals:
        fraction = fraction[:max_decimals]
    elif len(fraction) < min_decimals:
        fraction = fraction.ljust(min_decimals, "0")

    if comma_separator:
        sign = "-" if whole.startswith("-") else ""
        whole = sign + f"{int(whole.lstrip('-')):,}"

    return f"{whole}.{fraction}" if fraction else whole


def percentage_string(part: int, total: int, precision: int = 2) -> str:
    """
    part / total as a percentage string with `precision` decimals (truncated).
    """
    if total == 0:
        return "0"
    scaled = part * 100 * 10**precision // total
    return add_decimal_point(scaled, precision)


def format_liquidity_change(change: int) -> str:
    return f"+{change}" if change >= 0 else str(change)
