"""Numbers as the dialer and the message composer receive them."""

import os

import phonenumbers

REGION_ENV = "NICKDIAL_DEFAULT_REGION"


def default_region() -> str | None:
    """Region for numbers typed without a country code, from NICKDIAL_DEFAULT_REGION."""
    return os.environ.get(REGION_ENV, "").strip().upper() or None


def dialable(raw: str | None, region: str | None = None) -> str:
    """E.164 when the number is valid for region, else the stripped input.

    Short codes, star codes and anything libphonenumber rejects are handed to
    the dialer as typed. region falls back to default_region().
    """
    text = (raw or "").strip()
    if not text:
        return ""
    try:
        parsed = phonenumbers.parse(text, region or default_region())
    except phonenumbers.NumberParseException:
        return text
    if not phonenumbers.is_valid_number(parsed):
        return text
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def contact_numbers(
    voice: str | None, sms: str | None, region: str | None = None
) -> tuple[str, str]:
    """(voice, sms) ready to dial; a missing side borrows the other one."""
    voice_number = dialable(voice, region)
    sms_number = dialable(sms, region)
    return voice_number or sms_number, sms_number or voice_number
