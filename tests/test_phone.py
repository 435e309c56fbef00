"""Tests for the numbers handed to the dialer and composer."""

from nickdial.infrastructure.phone import contact_numbers, default_region, dialable


def test_dialable_formats_valid_numbers_as_e164():
    assert dialable("(202) 555-1234", region="US") == "+12025551234"
    assert dialable("+39 312 345 6789", region="US") == "+393123456789"


def test_dialable_keeps_short_codes_and_star_codes_as_typed():
    assert dialable("  *86  ", region="US") == "*86"
    assert dialable("611", region="US") == "611"
    assert dialable("555-1111") == "555-1111"


def test_dialable_empty():
    assert dialable(None) == ""
    assert dialable("   ") == ""


def test_region_comes_from_environment(monkeypatch):
    monkeypatch.setenv("NICKDIAL_DEFAULT_REGION", " it ")
    assert default_region() == "IT"
    assert dialable("312 345 6789") == "+393123456789"
    # explicit region wins over the environment
    assert dialable("202 555 1234", region="US") == "+12025551234"


def test_without_region_national_numbers_stay_raw(monkeypatch):
    monkeypatch.delenv("NICKDIAL_DEFAULT_REGION", raising=False)
    assert default_region() is None
    assert dialable("202 555 1234") == "202 555 1234"


def test_contact_numbers_fill_the_missing_side():
    assert contact_numbers("202 555 1234", "", region="US") == ("+12025551234", "+12025551234")
    assert contact_numbers(None, "*86") == ("*86", "*86")
    assert contact_numbers("611", "202 555 1234", region="US") == ("611", "+12025551234")
    assert contact_numbers("", None) == ("", "")
