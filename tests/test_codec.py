"""Tests for the persistence codec — canonical form and legacy fallback."""

import json

import pytest

from clientnote.activity.models import LegacyText, PersistedExchange
from clientnote.persistence.codec import SCHEMA_VERSION, decode, encode


def test_encode_is_versioned_json():
    exchange = PersistedExchange("Client reported anxiety", "P: ...", "PIRP")
    data = json.loads(encode(exchange).decode("utf-8"))
    assert data == {
        "version": SCHEMA_VERSION,
        "display_prompt": "Client reported anxiety",
        "final_response": "P: ...",
        "format_used": "PIRP",
    }


@pytest.mark.parametrize(
    "exchange",
    [
        PersistedExchange("prompt", "response", "SOAP"),
        PersistedExchange("", "", None),
        PersistedExchange("naïve café ✓", "<think>hmm</think>Résumé", "DAP"),
        PersistedExchange("line1\nline2", '{"looks": "like json"}', None),
    ],
)
def test_round_trip(exchange):
    assert decode(encode(exchange)) == exchange


def test_encode_keeps_non_ascii_readable():
    blob = encode(PersistedExchange("café", "ok"))
    assert "café".encode("utf-8") in blob


def test_decode_accepts_str():
    blob = encode(PersistedExchange("a", "b")).decode("utf-8")
    assert decode(blob) == PersistedExchange("a", "b")


def test_missing_version_is_read_as_current():
    blob = json.dumps({"display_prompt": "a", "final_response": "b"}).encode()
    assert decode(blob) == PersistedExchange("a", "b", None)


def test_message_array_collapses_to_last_answered_pair():
    blob = json.dumps(
        [
            {"prompt": "analysis prompt", "response": "analysis"},
            {"prompt": "real prompt", "response": "real note"},
            {"prompt": "unanswered", "response": None},
        ]
    ).encode()
    assert decode(blob) == PersistedExchange("real prompt", "real note")


def test_message_array_without_answers_keeps_last_prompt():
    blob = json.dumps([{"prompt": "first"}, {"prompt": "second"}]).encode()
    assert decode(blob) == PersistedExchange("second", "")


@pytest.mark.parametrize(
    "blob",
    [
        b"Plain note text from an old version",
        b"",
        b"{not json",
        b'{"version": 99, "display_prompt": "a", "final_response": "b"}',
        b'{"version": true, "display_prompt": "a", "final_response": "b"}',
        b'{"display_prompt": 1, "final_response": "b"}',
        b'{"display_prompt": "a", "final_response": "b", "format_used": 3}',
        b"[1, 2, 3]",
        b"[]",
        b'"just a string"',
        b"42",
    ],
)
def test_unrecognized_blobs_become_legacy_text(blob):
    record = decode(blob)
    assert isinstance(record, LegacyText)
    assert record.text == blob.decode("utf-8")
    assert record.display_prompt == ""
    assert record.final_response == record.text


def test_invalid_utf8_never_raises():
    record = decode(b"\xff\xfeold note \x80")
    assert isinstance(record, LegacyText)
    assert "old note" in record.text


def test_deeply_nested_json_never_raises():
    blob = ("[" * 100000 + "]" * 100000).encode()
    record = decode(blob)
    assert isinstance(record, LegacyText)


@pytest.mark.parametrize(
    "blob",
    [
        b"[" + b"1" * 5000 + b"]",
        b'{"display_prompt": "a", "final_response": "b", "version": ' + b"9" * 5000 + b"}",
    ],
)
def test_oversized_integer_literal_never_raises(blob):
    record = decode(blob)
    assert isinstance(record, LegacyText)
    assert record.text == blob.decode("utf-8")
