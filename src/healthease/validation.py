# validation.py
# Input checks for free-text fields typed by the user.
# Parsers raise ValueError; predicates return bool.

import re
from typing import Tuple

COORDS_RE = re.compile(r"^\s*([+-]?\d+(\.\d+)?)\s*[, ]\s*([+-]?\d+(\.\d+)?)\s*$")
NAME_RE = re.compile(r"^[A-Za-z ]{2,100}$")
MOBILE_RE = re.compile(r"^\d{10}$")
UPI_RE = re.compile(r"^[\w.\-]{2,}@[a-zA-Z]{2,}$")
CARD_RE = re.compile(r"^\d{12,19}$")
EXPIRY_RE = re.compile(r"^(0[1-9]|1[0-2])/?([0-9]{2})$")
CVV_RE = re.compile(r"^\d{3,4}$")

COORDS_HINT = "Enter lat,lon (e.g. 12.9716,77.5946) or use your current location."


def parse_coords(text: str) -> Tuple[float, float]:
    """
    Parse a "lat,lon" or "lat lon" string.

    Returns:
        (lat, lng)

    Raises:
        ValueError: if the text does not match the expected format.
    """
    m = COORDS_RE.match((text or "").strip())
    if not m:
        raise ValueError(COORDS_HINT)
    return float(m.group(1)), float(m.group(3))


def is_valid_name(name: str) -> bool:
    return bool(NAME_RE.match((name or "").strip()))


def is_valid_mobile(mobile: str) -> bool:
    return bool(MOBILE_RE.match((mobile or "").strip()))


def is_valid_upi(upi: str) -> bool:
    return bool(UPI_RE.match(upi or ""))


def is_valid_card(number: str) -> bool:
    return bool(CARD_RE.match(re.sub(r"\s+", "", number or "")))


def is_valid_expiry(expiry: str) -> bool:
    return bool(EXPIRY_RE.match(expiry or ""))


def is_valid_cvv(cvv: str) -> bool:
    return bool(CVV_RE.match(cvv or ""))
