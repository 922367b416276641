"""Tests for navigation resolution and the fallback chains."""

import pytest

from flowstate.core.errors import MissingDestination
from flowstate.core.navigation import (
    action_candidates,
    initialization_candidates,
    resolve_next,
    submission_candidates,
)
from flowstate.core.precedence import first_non_empty, merge_layers


def test_first_non_empty_skips_none_and_empty():
    assert first_non_empty([None, "", "a", "b"]) == "a"
    assert first_non_empty([None, ""]) is None


def test_first_non_empty_keeps_falsy_values():
    assert first_non_empty([None, 0]) == 0


def test_merge_layers():
    assert merge_layers([{"a": 1}, None, {"a": 2, "b": 3}]) == {"a": 2, "b": 3}


class TestResolveNext:
    def test_response_wins(self):
        assert resolve_next(submission_candidates("a.html", "b.html", "c.html", "d.html")) == "a.html"

    def test_submitter_before_form_before_step(self):
        assert resolve_next(submission_candidates(None, "", "c.html", "d.html")) == "c.html"
        assert resolve_next(submission_candidates(None, None, None, "d.html")) == "d.html"

    def test_action_chain(self):
        assert resolve_next(action_candidates(None, None, "step.html")) == "step.html"

    def test_initialization_chain(self):
        assert resolve_next(initialization_candidates("", "start.html")) == "start.html"

    def test_missing_destination(self):
        with pytest.raises(MissingDestination) as exc_info:
            resolve_next([None, ""])
        assert str(exc_info.value) == "No next_step or fallback defined for this step."

    def test_custom_message(self):
        with pytest.raises(MissingDestination, match="initialization"):
            resolve_next([], "No next_step or start_page provided for initialization.")
