"""Tests for the build submission quota check."""

import pytest

from entities import TimeUnit
from quota import evaluate_quota


@pytest.mark.parametrize(
    "text, quota_full",
    [
        ("3 days ago", False),
        ("1 day ago", False),
        ("5 hours ago", True),
        ("12 hours ago", True),
        ("13 hours ago", False),
        ("about 23 hours ago", False),
        ("0 days ago", True),
        ("about 1 month ago", True),
        ("less than a minute ago", True),
        ("", True),
        (None, True),
    ],
)
def test_evaluate_quota(text, quota_full):
    assert evaluate_quota(text, 12).quota_full is quota_full


def test_day_text_is_normalised_to_the_day_unit():
    state = evaluate_quota("3 days ago", 12)

    assert state.unit is TimeUnit.DAY
    assert state.amount == 3


def test_hour_text_uses_the_hour_unit():
    state = evaluate_quota("about 5 hours ago", 12)

    assert state.unit is TimeUnit.HOUR
    assert state.amount == 5
    assert state.quota_full is True


def test_limit_is_configurable():
    assert evaluate_quota("1 day ago", 48).quota_full is True
    assert evaluate_quota("3 days ago", 48).quota_full is False
    assert evaluate_quota("5 hours ago", 4).quota_full is False
