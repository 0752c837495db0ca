"""
Numeral codec for bank, register and address identifiers.

Identifiers are written in a configurable base (2-36) using the digits
0-9 followed by a-z, left-padded with zeros to a configured width.
"""

from typing import Optional

DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
MIN_BASE = 2
MAX_BASE = 36
DEFAULT_BASE = 10

# Largest value accepted by decode (signed 64-bit maximum)
MAX_DECODED_VALUE = 2**63 - 1


def encode(value: int, base: int = DEFAULT_BASE, width: int = 0) -> str:
    """
    Encode an integer as a zero-padded numeral in the given base.

    Args:
        value: Integer to encode (negative values get a leading '-')
        base: Numeral base; anything outside [2, 36] falls back to 10
        width: Minimum number of digits (the sign is not counted)

    Returns:
        The encoded numeral
    """
    if base < MIN_BASE or base > MAX_BASE:
        base = DEFAULT_BASE
    width = max(0, width)

    if value == 0:
        return "0" * max(1, width)

    negative = value < 0
    remaining = -value if negative else value

    digits = []
    while remaining > 0:
        remaining, digit = divmod(remaining, base)
        digits.append(DIGITS[digit])
    text = "".join(reversed(digits))

    if len(text) < width:
        text = "0" * (width - len(text)) + text
    return "-" + text if negative else text


def decode(token: str, base: int = DEFAULT_BASE, allow_negative: bool = False) -> int:
    """
    Decode a numeral in the given base.

    The base is not clamped here: callers validate it once through BankConfig.

    Args:
        token: Numeral text (letters are accepted in either case)
        base: Numeral base
        allow_negative: Accept a single leading '-'

    Returns:
        The decoded integer

    Raises:
        ValueError: If the token is empty, contains a digit outside [0, base),
            or overflows the signed 64-bit range
    """
    if not token:
        raise ValueError("Empty numeral")

    negative = False
    digits = token
    if allow_negative and token[0] == "-":
        negative = True
        digits = token[1:]
        if not digits:
            raise ValueError(f"Numeral has a sign but no digits: {token!r}")

    value = 0
    for ch in digits:
        digit = DIGITS.find(ch.lower())
        if digit < 0 or digit >= base:
            raise ValueError(f"Invalid digit {ch!r} for base {base} in {token!r}")
        value = value * base + digit
        if value > MAX_DECODED_VALUE:
            raise ValueError(f"Numeral overflows: {token!r}")

    return -value if negative else value


def try_decode(token: str, base: int = DEFAULT_BASE) -> Optional[int]:
    """Decode a non-negative numeral, returning None instead of raising."""
    try:
        return decode(token, base)
    except ValueError:
        return None
