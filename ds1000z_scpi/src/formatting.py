"""
Locale-independent number and boolean handling for SCPI text.

Rigol firmware only accepts '.' as the decimal separator and answers
queries in scientific notation (e.g. '1.000000e-03'), so everything that
goes on the wire or comes back from it passes through here.
"""

import math
import re

# Plain decimal or scientific notation; no thousands separators, no commas.
_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

_TRUE_WORDS = ("ON", "1", "TRUE")
_FALSE_WORDS = ("OFF", "0", "FALSE")


def parse_number(text):
    """
    Parse a numeric SCPI value.

    Args:
        text: str, int or float. Strings must use '.' as decimal separator.

    Returns:
        float

    Raises:
        ValueError: If text is not a finite number in invariant notation
    """
    if isinstance(text, bool):
        raise ValueError(f"Expected a number, got bool {text!r}")
    if isinstance(text, (int, float)):
        value = float(text)
    else:
        stripped = str(text).strip()
        if not _NUMBER_RE.match(stripped):
            raise ValueError(f"Not an invariant numeric string: {text!r}")
        value = float(stripped)
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"Number must be finite, got {text!r}")
    return value


def format_number(value):
    """
    Render a number the way the instrument expects it.

    Integral values drop the fractional part (1000.0 -> '1000'), everything
    else uses the shortest round-tripping repr (0.5 -> '0.5', 1e-06 -> '1e-06').
    """
    value = parse_number(value)
    if value == 0:
        return "0"
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def parse_bool(text):
    """Parse ON/OFF/1/0 (or a Python bool) into a bool."""
    if isinstance(text, bool):
        return text
    if isinstance(text, int) and text in (0, 1):
        return bool(text)
    word = str(text).strip().upper()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"Not a boolean value: {text!r}")


def format_bool(value):
    return "ON" if parse_bool(value) else "OFF"
