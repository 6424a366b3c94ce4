"""Duration resolution: ABC length tokens to integer step counts."""

import math
import re
from fractions import Fraction

STEPS_PER_WHOLE = 16  # one step = one sixteenth note
DEFAULT_BASE_STEPS = 2  # L:1/8

_SLASHES_ONLY = re.compile(r"^/+$")
_DIGITS_ONLY = re.compile(r"^[0-9]+$")
_FRACTION = re.compile(r"([0-9]+)\s*/\s*([0-9]+)")
_HALF = Fraction(1, 2)


def round_half_up(value: Fraction | float) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3, not 2)."""
    if isinstance(value, Fraction):
        return math.floor(value + _HALF)
    return math.floor(value + 0.5)


def _undotted_duration(token: str, base_steps: int) -> int:
    if not token:
        return base_steps

    if _SLASHES_ONLY.match(token):
        return max(1, round_half_up(Fraction(base_steps, 2 ** len(token))))

    if "/" in token:
        parts = token.split("/")
        numerator_text, denominator_text = parts[0], parts[1]
        if not _DIGITS_ONLY.match(numerator_text or "1") or not _DIGITS_ONLY.match(
            denominator_text or "2"
        ):
            return base_steps
        numerator = int(numerator_text) if numerator_text else 1
        denominator = int(denominator_text) if denominator_text else 2
        if denominator == 0:
            return base_steps
        return max(1, round_half_up(Fraction(base_steps * numerator, denominator)))

    if _DIGITS_ONLY.match(token):
        multiplier = int(token)
        if multiplier > 0:
            return base_steps * multiplier

    return base_steps


def resolve_duration(token: str, base_steps: int) -> int:
    """
    Convert an ABC duration suffix into a step count.

    Rules, first match wins:
      - ``""``          -> ``base_steps``
      - ``>``/``<``     -> stripped (broken rhythm is not applied)
      - ``/``, ``//``   -> base halved per slash, rounded, at least 1
      - ``3/2``, ``/4`` -> base * num / den (num defaults to 1, den to 2)
      - ``2``           -> base * 2
      - anything else   -> ``base_steps``

    Trailing dots then lengthen the result: each dot adds half of what the
    previous one added, so ``.`` is 1.5x and ``..`` is 1.75x.

    Args:
        token:      The characters following a note, rest or chord.
        base_steps: Steps of an unmodified note (from the L: field).

    Returns:
        The duration in steps, never below 1 for a positive base.
    """
    if not token:
        return base_steps

    cleaned = token.replace(">", "").replace("<", "")
    if not cleaned:
        return base_steps

    undotted = cleaned.rstrip(".")
    dots = len(cleaned) - len(undotted)
    duration = _undotted_duration(undotted, base_steps)
    if not dots:
        return duration

    # n dots scale by 2 - 1/2**n.
    dotted = Fraction(duration) * (2 - Fraction(1, 2**dots))
    return max(1, round_half_up(dotted))


def parse_fraction(text: str) -> Fraction | None:
    """Return the first ``n/d`` fraction in ``text``, or None."""
    match = _FRACTION.search(text)
    if not match:
        return None
    denominator = int(match.group(2))
    if denominator == 0:
        return None
    return Fraction(int(match.group(1)), denominator)


def base_steps_for_length(text: str, current: int = DEFAULT_BASE_STEPS) -> int:
    """
    Step count of the default note length declared by an ``L:`` value.

    Returns ``current`` unchanged when the value holds no usable fraction.
    """
    fraction = parse_fraction(text)
    if fraction is None:
        return current
    return max(1, round_half_up(fraction * STEPS_PER_WHOLE))
