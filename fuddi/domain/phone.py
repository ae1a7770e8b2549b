"""
Ecuadorian phone number rules

Canonical stored format is the local mobile number: 09XXXXXXXX (10 digits).
"""
import re
from typing import List, Optional

COUNTRY_CODE = "593"

_SEPARATORS = re.compile(r"[\s\-\(\)]")
_NON_DIGITS = re.compile(r"\D")
_LOCAL_MOBILE = re.compile(r"^09[0-9]{8}$")

PHONE_VALIDATION_MESSAGES = {
    "REQUIRED": "El número de celular es obligatorio",
    "INVALID_FORMAT": "Ingrese un número de celular ecuatoriano válido (10 dígitos empezando con 09)",
    "TOO_SHORT": "El número de celular debe tener 10 dígitos",
    "TOO_LONG": "El número de celular debe tener 10 dígitos",
    "INVALID_PREFIX": "El número de celular debe empezar con 09",
}


def clean_phone(phone: str) -> str:
    """Keep digits only"""
    return _NON_DIGITS.sub("", phone or "")


def strip_separators(phone: str) -> str:
    return _SEPARATORS.sub("", phone or "")


def looks_like_phone(text: str) -> bool:
    """True when the text is only digits (after separators and a leading +) and has at least 7 of them"""
    candidate = strip_separators((text or "").strip())
    if candidate.startswith("+"):
        candidate = candidate[1:]
    return candidate.isdigit() and len(candidate) >= 7


def normalize_ecuadorian_phone(phone: str) -> str:
    """
    Normalize any accepted input to 09XXXXXXXX

    +593959036708, +593 95 903 6708, 593959036708, 959036708 and
    0959036708 all become 0959036708.
    """
    if not phone:
        return ""

    cleaned = strip_separators(phone)

    if cleaned.startswith("+" + COUNTRY_CODE):
        cleaned = cleaned[len(COUNTRY_CODE) + 1:]
        if not cleaned.startswith("0"):
            cleaned = "0" + cleaned
    elif cleaned.startswith(COUNTRY_CODE) and len(cleaned) > 10:
        cleaned = cleaned[len(COUNTRY_CODE):]
        if not cleaned.startswith("0"):
            cleaned = "0" + cleaned
    elif len(cleaned) == 9 and cleaned.startswith("9"):
        cleaned = "0" + cleaned

    return clean_phone(cleaned)


def validate_ecuadorian_phone(phone: str) -> bool:
    return bool(_LOCAL_MOBILE.match(phone or ""))


def validate_and_normalize_phone(phone: str) -> Optional[str]:
    """Normalized number if valid, None otherwise"""
    normalized = normalize_ecuadorian_phone(phone)
    if validate_ecuadorian_phone(normalized):
        return normalized
    return None


def format_ecuadorian_phone(phone: str) -> str:
    """0990815097 -> 099 081 5097; anything invalid is returned untouched"""
    if not validate_ecuadorian_phone(phone):
        return phone
    return f"{phone[:3]} {phone[3:6]} {phone[6:]}"


def phone_validation_message(phone: str) -> Optional[str]:
    """User-facing message for an invalid phone, None when valid"""
    if not phone:
        return PHONE_VALIDATION_MESSAGES["REQUIRED"]

    normalized = normalize_ecuadorian_phone(phone)
    if len(normalized) < 10:
        return PHONE_VALIDATION_MESSAGES["TOO_SHORT"]
    if len(normalized) > 10:
        return PHONE_VALIDATION_MESSAGES["TOO_LONG"]
    if not normalized.startswith("09"):
        return PHONE_VALIDATION_MESSAGES["INVALID_PREFIX"]
    if not validate_ecuadorian_phone(normalized):
        return PHONE_VALIDATION_MESSAGES["INVALID_FORMAT"]
    return None


def phone_lookup_candidates(query: str) -> List[str]:
    """
    Variants to try, in order, when looking a client up by phone:
    as typed, locally normalized, country code stripped, 9 digits with a leading zero.
    Duplicates are dropped while keeping the order.
    """
    as_typed = strip_separators((query or "").strip())
    digits = clean_phone(as_typed)

    stripped = digits
    if stripped.startswith(COUNTRY_CODE) and len(stripped) > 10:
        stripped = stripped[len(COUNTRY_CODE):]

    nine_digit = stripped[-9:] if len(stripped) >= 9 else stripped
    with_zero = "0" + nine_digit if len(nine_digit) == 9 and not nine_digit.startswith("0") else nine_digit

    candidates = [as_typed, normalize_ecuadorian_phone(as_typed), stripped, with_zero]

    ordered: List[str] = []
    for candidate in candidates:
        if candidate and candidate not in ordered:
            ordered.append(candidate)
    return ordered
