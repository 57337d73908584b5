"""Lenient JSON repair applied to raw model output before parsing.

Each strategy is a plain ``str -> str`` function; the inference loop applies a
chain of them in order. Only whitespace trimming and the leading-brace repair
run by default.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import re

RepairStrategy = Callable[[str], str]

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.IGNORECASE | re.DOTALL)


def strip_whitespace(text: str) -> str:
    return text.strip()


def ensure_leading_brace(text: str) -> str:
    """Prepend ``{`` when a provider elides the opening brace of an object."""
    if text.startswith("{"):
        return text
    return "{" + text


def strip_markdown_fence(text: str) -> str:
    """Return the body of the first fenced code block, if any."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


DEFAULT_REPAIRS: tuple[RepairStrategy, ...] = (strip_whitespace, ensure_leading_brace)


def apply_repairs(text: str, repairs: Sequence[RepairStrategy] = DEFAULT_REPAIRS) -> str:
    for repair in repairs:
        text = repair(text)
    return text
