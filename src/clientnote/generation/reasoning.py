"""
Reasoning segments — <think>…</think> blocks some local models emit.

Reasoning stays inline in the final response (presentation decides whether
to fold it). Two things need care:

- while streaming, a chunk may end mid-tag ("…<thi"); that partial prefix
  is held back until the next chunk so observers never see half a tag;
- a stream that ends inside a reasoning block gets its closing tag added.
"""

from __future__ import annotations

import re

OPEN_TAG = "<think>"
CLOSE_TAG = "</think>"
_TAGS = (OPEN_TAG, CLOSE_TAG)
_TAG_RE = re.compile(r"</?think>")
_SEGMENT_RE = re.compile(r"<think>(.*?)(?:</think>|\Z)", re.S)


def _partial_tag_suffix(text: str) -> int:
    """Length of the longest proper tag prefix at the end of `text`."""
    longest = max(len(t) for t in _TAGS) - 1
    for n in range(min(len(text), longest), 0, -1):
        suffix = text[-n:]
        if any(tag.startswith(suffix) and tag != suffix for tag in _TAGS):
            return n
    return 0


class ReasoningTracker:
    """Feeds stream chunks through, holding back partial tags."""

    def __init__(self) -> None:
        self._pending = ""
        self.in_reasoning = False

    def feed(self, chunk: str) -> str:
        text = self._pending + chunk
        self._pending = ""
        hold = _partial_tag_suffix(text)
        if hold:
            self._pending = text[-hold:]
            text = text[:-hold]
        for match in _TAG_RE.finditer(text):
            self.in_reasoning = match.group(0) == OPEN_TAG
        return text

    def flush(self) -> str:
        """Release whatever is still held back. Call once the stream has ended."""
        text, self._pending = self._pending, ""
        return text


def close_open_reasoning(text: str) -> str:
    """Append a closing tag if the text ends inside a reasoning block."""
    if text.rfind(OPEN_TAG) > text.rfind(CLOSE_TAG):
        return text + CLOSE_TAG
    return text


def split_reasoning(text: str) -> tuple[str, str]:
    """Split into (reasoning, answer). Reasoning blocks are joined by blank lines."""
    reasoning = [m.group(1).strip() for m in _SEGMENT_RE.finditer(text)]
    answer = _SEGMENT_RE.sub("", text).strip()
    return "\n\n".join(r for r in reasoning if r), answer
