"""Tests for <think> segment handling."""

import pytest

from clientnote.generation.reasoning import ReasoningTracker, close_open_reasoning, split_reasoning


def _feed_all(chunks):
    tracker = ReasoningTracker()
    out = [tracker.feed(c) for c in chunks]
    out.append(tracker.flush())
    return [o for o in out if o], tracker


def test_plain_text_passes_through():
    out, tracker = _feed_all(["Plan: ", "follow up"])
    assert out == ["Plan: ", "follow up"]
    assert not tracker.in_reasoning


def test_split_open_tag_is_held_back():
    out, tracker = _feed_all(["<", "thi", "nk>pondering"])
    assert out == ["<think>pondering"]
    assert tracker.in_reasoning


def test_split_close_tag_is_held_back():
    out, tracker = _feed_all(["<think>a</th", "ink>answer"])
    assert out == ["<think>a", "</think>answer"]
    assert not tracker.in_reasoning


def test_trailing_partial_tag_released_on_flush():
    tracker = ReasoningTracker()
    assert tracker.feed("x </") == "x "
    assert tracker.flush() == "</"
    assert tracker.flush() == ""


def test_lookalike_text_is_not_held():
    out, _ = _feed_all(["a < b", " and <b>bold</b>"])
    assert "".join(out) == "a < b and <b>bold</b>"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("<think>unfinished", "<think>unfinished</think>"),
        ("<think>done</think>answer", "<think>done</think>answer"),
        ("<think>a</think>b<think>c", "<think>a</think>b<think>c</think>"),
        ("no reasoning", "no reasoning"),
        ("", ""),
    ],
)
def test_close_open_reasoning(text, expected):
    assert close_open_reasoning(text) == expected


def test_split_reasoning():
    reasoning, answer = split_reasoning("<think>step one</think>\nP: anxiety\n<think>step two</think>")
    assert reasoning == "step one\n\nstep two"
    assert answer == "P: anxiety"


def test_split_reasoning_unclosed():
    assert split_reasoning("Answer <think>trailing") == ("trailing", "Answer")
