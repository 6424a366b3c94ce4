"""Dialect detection: ABC notation or the line-oriented legacy format."""

import re
from enum import Enum

_ABC_HEADER_RE = re.compile(r"^[XTMKLCQP]:")


class Dialect(Enum):
    ABC = "abc"
    LEGACY = "legacy"


def detect_dialect(content: str) -> Dialect:
    """
    Classify score text by its first substantive line.

    Blank lines and ``%`` comment lines are skipped; the first other line
    decides. It is ABC when it starts with one of ``X T M K L C Q P``
    followed directly by a colon, legacy otherwise.
    """
    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("%"):
            continue
        if _ABC_HEADER_RE.match(stripped):
            return Dialect.ABC
        break
    return Dialect.LEGACY


def is_abc_notation(content: str) -> bool:
    return detect_dialect(content) is Dialect.ABC
