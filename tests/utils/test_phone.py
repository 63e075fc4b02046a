import pytest

from coachbot.utils.phone import format_address, normalize_address


@pytest.mark.parametrize("raw,expected", [
    ("whatsapp:+15550102030", "5550102030"),
    ("+1 (555) 010-2030", "5550102030"),
    ("555.010.2030", "5550102030"),
    ("sms:5550102030", "5550102030"),
    ("11234567890", "1234567890"),  # only one leading 1 is stripped
    ("", ""),
    (None, ""),
])
def test_normalize(raw, expected):
    assert normalize_address(raw) == expected


def test_format_adds_scheme_and_plus():
    assert format_address("5550102030", scheme="whatsapp") == "whatsapp:+5550102030"
    assert format_address("whatsapp:+15550102030", scheme="") == "+5550102030"


@pytest.mark.parametrize("raw", ["whatsapp:+15550102030", "(212) 555-0199", "+1 917 555 0100"])
def test_round_trip(raw):
    canonical = normalize_address(raw)
    assert normalize_address(format_address(canonical, scheme="whatsapp")) == canonical
