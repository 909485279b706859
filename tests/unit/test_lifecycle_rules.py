"""Unit tests for the request status graph"""

import itertools

import pytest

from factoring_engine.domain.exceptions import InvalidTransitionError, ValidationError
from factoring_engine.domain.lifecycle import (
    HAPPY_PATH,
    TRANSITIONS,
    can_transition,
    ensure_transition,
    parse_status,
)
from factoring_engine.domain.models import RequestStatus as S


@pytest.mark.parametrize(
    "current,target",
    [
        (S.REVIEW, S.OFFERED),
        (S.REVIEW, S.ACCEPTED),
        (S.OFFERED, S.ACCEPTED),
        (S.OFFERED, S.REVIEW),
        (S.ACCEPTED, S.SIGNED),
        (S.ACCEPTED, S.FUNDED),
        (S.SIGNED, S.FUNDED),
        (S.FUNDED, S.ARCHIVED),
        (S.CANCELLED, S.ARCHIVED),
    ],
)
def test_allowed_transitions(current, target):
    assert ensure_transition(current, target) == target


@pytest.mark.parametrize(
    "current,target",
    [
        (S.FUNDED, S.REVIEW),
        (S.SIGNED, S.OFFERED),
        (S.ACCEPTED, S.REVIEW),
        (S.CANCELLED, S.REVIEW),
        (S.REVIEW, S.FUNDED),
        (S.REVIEW, S.SIGNED),
    ],
)
def test_forbidden_transitions(current, target):
    with pytest.raises(InvalidTransitionError):
        ensure_transition(current, target)


def test_archived_has_no_way_out():
    assert TRANSITIONS[S.ARCHIVED] == frozenset()
    for target in S:
        assert not can_transition(S.ARCHIVED, target)


def test_no_self_transitions():
    for status in S:
        assert not can_transition(status, status)


def test_happy_path_never_moves_backwards():
    """Only offered -> review goes back along the happy path"""
    rank = {status: index for index, status in enumerate(HAPPY_PATH)}
    for current, target in itertools.product(HAPPY_PATH, HAPPY_PATH):
        if can_transition(current, target) and rank[target] < rank[current]:
            assert (current, target) == (S.OFFERED, S.REVIEW)


def test_parse_status_is_case_insensitive():
    assert parse_status(" Funded ") == S.FUNDED
    assert ensure_transition("SIGNED", "funded") == S.FUNDED


def test_unknown_status_is_validation_error():
    with pytest.raises(ValidationError) as exc_info:
        parse_status("paid")
    assert "paid" in exc_info.value.message


def test_invalid_transition_message_in_spanish():
    with pytest.raises(InvalidTransitionError) as exc_info:
        ensure_transition("funded", "review")
    assert exc_info.value.message == "No es posible pasar la solicitud de desembolsada a en revisión"
