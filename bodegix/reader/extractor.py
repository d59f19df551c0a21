# bodegix/reader/extractor.py
"""
Turns whatever the scanner typed into the session code.

USB scanners act as keyboards, so the payload arrives as keystrokes and
punctuation sometimes comes out wrong (keyboard layout mismatch). Hex
digits survive, which is what the last matcher relies on.

Matchers run in a fixed order and the first non-empty result wins.
"""
import re
from typing import Callable, List, Optional, Tuple

HEX_RUN = r"[A-Fa-f0-9]{16,64}"

QUERY_PARAM_PATTERN = re.compile(r"c=(" + HEX_RUN + r")")
TRAILING_HEX_PATTERN = re.compile(r"(" + HEX_RUN + r")$")

Matcher = Callable[[str], Optional[str]]


def match_delimited(text: str) -> Optional[str]:
    """BODEGIX|OPEN|<code> -> <code>"""
    if "|" not in text:
        return None
    return text.rsplit("|", 1)[1]


def match_query_param(text: str) -> Optional[str]:
    """https://host/open?c=<code> -> <code>"""
    match = QUERY_PARAM_PATTERN.search(text)
    return match.group(1) if match else None


def match_trailing_hex(text: str) -> Optional[str]:
    """garbled##<code> -> <code>"""
    match = TRAILING_HEX_PATTERN.search(text)
    return match.group(1) if match else None


MATCHERS: List[Tuple[str, Matcher]] = [
    ("delimited", match_delimited),
    ("query_param", match_query_param),
    ("trailing_hex", match_trailing_hex),
]


def extract_code_with_strategy(raw: Optional[str]) -> Tuple[str, Optional[str]]:
    """Returns (code, matcher name). ("", None) when nothing usable was found."""
    text = str(raw).strip() if raw else ""
    if not text:
        return "", None

    for name, matcher in MATCHERS:
        code = matcher(text)
        if code is not None:
            return code, name
    return "", None


def extract_code(raw: Optional[str]) -> str:
    return extract_code_with_strategy(raw)[0]
