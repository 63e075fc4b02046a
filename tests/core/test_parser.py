import pytest

from coachbot.core.checkin_flow import ROUND_1 as CHECKIN_ROUND_1
from coachbot.core.onboarding_flow import ROUND_1, ROUND_2, ROUND_3
from coachbot.core.parser import NO, YES, parse_number, parse_yes_no, split_answers


@pytest.mark.parametrize("text", ["Y", "y", "yes", " YES ", "Yes\n"])
def test_yes_variants(text):
    assert parse_yes_no(text) == YES


@pytest.mark.parametrize("text", ["N", "no", "", "   ", "maybe", "yep", "Y Y", "🤷", None])
def test_anything_else_is_no(text):
    assert parse_yes_no(text) == NO


def test_split_keeps_empty_tokens():
    assert split_answers(" 1, ,y ") == ["1", "", "Y"]


@pytest.mark.parametrize("token,expected", [("175", 175), ("7.5", 7.5), ("3.0", 3), ("-2", -2), ("abc", None), ("", None), ("1e3", None)])
def test_parse_number(token, expected):
    assert parse_number(token) == expected


def test_checkin_round_1_accepts_example():
    assert CHECKIN_ROUND_1.validate("175, 4, 30, 45, Y") == {
        "scaleUpdate": 175,
        "sweatSessions": 4,
        "cardioMinutes": 30,
        "walkInOut": 45,
        "foodGame": "Y",
    }


@pytest.mark.parametrize(
    "text",
    [
        "175,4,30,45,Y,1",  # too many fields
        "175,4,30,45",  # too few
        "175, 4, 301, 45, Y",  # cardio above 300
        "175, 8, 30, 45, Y",  # more than 7 days
        "0, 4, 30, 45, Y",  # weight below 1
        "175, 4, 30, 45, maybe",
        "175, four, 30, 45, Y",
        "",
    ],
)
def test_checkin_round_1_rejects(text):
    assert CHECKIN_ROUND_1.validate(text) is None


def test_bounds_are_inclusive():
    assert CHECKIN_ROUND_1.validate("1,0,0,0,n") is not None
    assert CHECKIN_ROUND_1.validate("999,7,300,300,y") is not None


def test_onboarding_round_2_mixes_numbers_and_choice():
    answers = ROUND_2.validate("6, 3, y, 2, 1")
    assert answers == {"waterGlasses": 6, "sleepQuality": 3, "improveIntimacy": "Y", "stressLevel": 2, "dailyDrinks": 1}
    assert ROUND_2.validate("6, 3, 2, Y, 1") is None


def test_onboarding_round_3_needs_exactly_14():
    assert ROUND_3.size == 14
    answers = ROUND_3.validate("N,N,N,Y,N,N,Y,N,N,Y,Y,N,N,N")
    assert answers["osteoporosis"] == "Y"
    assert answers["osteoarthritis"] == "N"
    assert ROUND_3.validate("N,N,N,Y,N,N,Y,N,N,Y,Y,N,N") is None


def test_onboarding_round_1_age_bounds():
    assert ROUND_1.validate("35, 180, 20, 2, 3")["age"] == 35
    assert ROUND_1.validate("120, 180, 20, 2, 3") is None
