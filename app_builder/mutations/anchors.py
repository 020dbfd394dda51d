"""Anchor resolution for injections and substitutions.

An anchor is either a literal substring or a compiled regular expression.
Resolution is a single forward search: the first match wins and no other
candidate is considered.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

Anchor = Union[str, re.Pattern]


@dataclass(frozen=True)
class Span:
    """Half-open ``[start, end)`` character range of an anchor match."""

    start: int
    end: int


class AnchorResolver:
    """Locates the first occurrence of an anchor inside a file's text."""

    def resolve(self, text: str, anchor: Anchor) -> Span | None:
        """Return the span of the first match of *anchor* in *text*, or ``None``."""
        if isinstance(anchor, re.Pattern):
            match = anchor.search(text)
            if match is None:
                return None
            return Span(match.start(), match.end())

        if not anchor:
            raise ValueError("Literal anchors must not be empty")
        index = text.find(anchor)
        if index < 0:
            return None
        return Span(index, index + len(anchor))


def block_anchor(start: str, end: str) -> "re.Pattern[str]":
    """Build a greedy anchor spanning from *start* to the last *end* in the file.

    Both delimiters are regular expression sources.  ``.`` matches newlines,
    so the match runs across lines up to the final occurrence of *end*; use it
    only where everything from the start delimiter to the end of the enclosing
    block is meant to be replaced.
    """
    return re.compile(f"{start}.*{end}", re.DOTALL)


def describe(anchor: Anchor) -> str:
    """Render an anchor for error messages."""
    if isinstance(anchor, re.Pattern):
        return f"/{anchor.pattern}/"
    return repr(anchor)
