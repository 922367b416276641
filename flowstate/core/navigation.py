"""
Navigation resolver.

The next page is the first non-empty entry of an ordered candidate list.
The helpers below build the standard lists so every call site applies the
same order.
"""

from typing import Iterable, Optional

from flowstate.core.errors import MissingDestination
from flowstate.core.precedence import first_non_empty


def resolve_next(candidates: Iterable[Optional[str]], message: Optional[str] = None) -> str:
    """
    Return the first non-empty candidate.

    Raises:
        MissingDestination: If every candidate is None or empty
    """
    destination = first_non_empty(candidates)
    if destination is None:
        raise MissingDestination(message)
    return str(destination)


def initialization_candidates(next_step: Optional[str], start_page: Optional[str]) -> list:
    return [next_step, start_page]


def submission_candidates(
    next_step: Optional[str],
    submitter_fallback: Optional[str],
    form_fallback: Optional[str],
    step_fallback: Optional[str],
) -> list:
    return [next_step, submitter_fallback, form_fallback, step_fallback]


def action_candidates(
    next_step: Optional[str],
    action_fallback: Optional[str],
    step_fallback: Optional[str],
) -> list:
    return [next_step, action_fallback, step_fallback]
