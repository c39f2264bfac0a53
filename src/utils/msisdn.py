# coding: utf-8
"""
MSISDN utilities

Canonicalizes Nigerian phone numbers to the 234XXXXXXXXXX form and infers the
carrier from the local number prefix.
"""
import re
from typing import Optional

from src.core.enums import Carrier


COUNTRY_CODE = "234"

# Characters users type between digits
SEPARATORS_PATTERN = re.compile(r"[\s\-().]+")
LOCAL_DIGITS_PATTERN = re.compile(r"^\d{10,11}$")

# Local number prefixes (after the country code), disjoint per carrier
CARRIER_PREFIXES: dict[Carrier, tuple[str, ...]] = {
    Carrier.MTN: (
        "803", "806", "703", "704", "706", "810",
        "813", "814", "816", "903", "906", "913",
    ),
    Carrier.AIRTEL: (
        "802", "808", "708", "701", "812", "902",
        "907", "901", "904", "911", "912",
    ),
}


def normalize_msisdn(value: Optional[str]) -> Optional[str]:
    """
    Normalize an MSISDN to its canonical form

    Examples:
        "0803 123 4567"   -> "2348031234567"
        "+2348031234567"  -> "2348031234567"
        "8031234567"      -> "2348031234567"

    Unrecognized shapes are returned cleaned but otherwise unchanged.

    Args:
        value: Raw phone number as typed

    Returns:
        Canonical MSISDN, or None for empty input
    """
    if not value:
        return None

    msisdn = SEPARATORS_PATTERN.sub("", value.strip())
    if msisdn.startswith("+"):
        msisdn = msisdn[1:]

    if msisdn.startswith("0") and len(msisdn) == 11:
        msisdn = COUNTRY_CODE + msisdn[1:]

    if msisdn.startswith(COUNTRY_CODE):
        return msisdn

    if LOCAL_DIGITS_PATTERN.match(msisdn):
        return COUNTRY_CODE + (msisdn[1:] if msisdn.startswith("0") else msisdn)

    return msisdn or None


def detect_carrier(msisdn: Optional[str]) -> Optional[Carrier]:
    """
    Detect carrier from MSISDN prefix

    Args:
        msisdn: Canonical MSISDN

    Returns:
        Carrier, or None when the prefix belongs to no supported carrier
    """
    if not msisdn:
        return None

    local_part = msisdn[len(COUNTRY_CODE):] if msisdn.startswith(COUNTRY_CODE) else msisdn

    for carrier, prefixes in CARRIER_PREFIXES.items():
        if local_part.startswith(prefixes):
            return carrier

    return None
