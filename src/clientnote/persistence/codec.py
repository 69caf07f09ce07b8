"""
Persistence Codec — one activity record ⇄ bytes.

Canonical form (UTF-8 JSON):

    {"version": 1,
     "display_prompt": "...",
     "final_response": "...",
     "format_used": "PIRP" | null}

Older records are still readable:
- the message-array form [{"prompt": ..., "response": ...}, ...] collapses
  to its last answered pair;
- anything else (plain text, unknown JSON, broken bytes) comes back as
  LegacyText holding the whole blob.

decode() never raises. A lost note must not look like a crash.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from clientnote.activity.models import LegacyText, PersistedExchange, Record
from clientnote.core.errors import MalformedPersistedRecord

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def encode(exchange: PersistedExchange) -> bytes:
    """Serialize an exchange to the canonical structured form."""
    payload = {
        "version": SCHEMA_VERSION,
        "display_prompt": exchange.display_prompt,
        "final_response": exchange.final_response,
        "format_used": exchange.format_used,
    }
    return json.dumps(payload, ensure_ascii=False, sort_keys=True).encode("utf-8")


def decode(blob: bytes | str) -> Record:
    """Deserialize a record, falling back to LegacyText on anything unexpected."""
    if isinstance(blob, str):
        text = blob
    else:
        text = bytes(blob).decode("utf-8", errors="replace")

    try:
        return _decode_structured(text)
    except MalformedPersistedRecord as e:
        logger.debug("Treating record as legacy text: %s", e)
        return LegacyText(text=text)


def _decode_structured(text: str) -> PersistedExchange:
    stripped = text.strip()
    if not stripped or stripped[0] not in "{[":
        raise MalformedPersistedRecord("not a JSON object or array")

    try:
        data = json.loads(stripped)
    except (ValueError, RecursionError) as e:
        # ValueError also covers over-long integer literals
        raise MalformedPersistedRecord(f"invalid JSON: {e}") from e

    if isinstance(data, dict):
        return _from_object(data)
    if isinstance(data, list):
        return _from_message_array(data)
    raise MalformedPersistedRecord(f"unexpected JSON type {type(data).__name__}")


def _from_object(data: dict[str, Any]) -> PersistedExchange:
    version = data.get("version", SCHEMA_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version > SCHEMA_VERSION:
        raise MalformedPersistedRecord(f"unsupported version {version!r}")

    display_prompt = data.get("display_prompt")
    final_response = data.get("final_response")
    format_used = data.get("format_used")

    if not isinstance(display_prompt, str) or not isinstance(final_response, str):
        raise MalformedPersistedRecord("display_prompt/final_response must be strings")
    if format_used is not None and not isinstance(format_used, str):
        raise MalformedPersistedRecord("format_used must be a string or null")

    return PersistedExchange(
        display_prompt=display_prompt,
        final_response=final_response,
        format_used=format_used,
    )


def _from_message_array(items: list[Any]) -> PersistedExchange:
    """Collapse the old multi-message history to its last answered pair."""
    pairs = []
    for item in items:
        if not isinstance(item, dict):
            raise MalformedPersistedRecord("message array entries must be objects")
        prompt = item.get("prompt")
        response = item.get("response")
        if not isinstance(prompt, str):
            raise MalformedPersistedRecord("message entry without a prompt")
        if response is not None and not isinstance(response, str):
            raise MalformedPersistedRecord("message response must be a string")
        pairs.append((prompt, response))

    if not pairs:
        raise MalformedPersistedRecord("empty message array")

    answered = [p for p in pairs if p[1]]
    prompt, response = answered[-1] if answered else pairs[-1]
    return PersistedExchange(display_prompt=prompt, final_response=response or "")
