"""Validates the backend's parsed JSON and builds an ExtractedData."""

import re
from datetime import date
from typing import Any

from referral_ocr.extraction.exceptions import ExtractionValidationError
from referral_ocr.extraction.models import ExtractedData, PatientFields, ReferralFields

DEFAULT_CONFIDENCE = 0.8

_ISO_DATE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")
_SLASHED_DATE = re.compile(r"^(\d{1,2})[-/.](\d{1,2})[-/.](\d{2}|\d{4})$")


def validate_and_build(data: dict[str, Any], raw_response: str = "") -> ExtractedData:
    """Validate parsed backend output and build the candidate record.

    Raises:
        ExtractionValidationError: if the payload does not have the expected shape.
    """
    patient_raw = _require_object(data, "patient")
    referral_raw = _require_object(data, "referral")

    patient = PatientFields(
        first_name=_optional_string(patient_raw, "patient", "firstName"),
        last_name=_optional_string(patient_raw, "patient", "lastName"),
        date_of_birth=_date_of_birth(patient_raw),
        phone=_optional_string(patient_raw, "patient", "phone"),
        gender=_gender(patient_raw),
    )
    referral = ReferralFields(
        referring_physician=_optional_string(referral_raw, "referral", "referringPhysician"),
        referring_facility=_optional_string(referral_raw, "referral", "referringFacility"),
        reason_for_referral=_optional_string(referral_raw, "referral", "reasonForReferral"),
    )
    return ExtractedData(
        patient=patient,
        referral=referral,
        confidence=_confidence(data.get("confidence")),
        raw_analysis=raw_response,
    )


def normalize_date(value: str) -> str | None:
    """Convert common written dates to ISO YYYY-MM-DD. None if not a real date.

    Ambiguous NN/NN/YYYY dates are read month-first unless the first number
    cannot be a month.
    """
    text = value.strip()
    iso = _ISO_DATE.match(text)
    if iso:
        year, month, day = (int(part) for part in iso.groups())
        return _safe_date(year, month, day)

    slashed = _SLASHED_DATE.match(text)
    if not slashed:
        return None
    first, second, year = (int(part) for part in slashed.groups())
    if len(slashed.group(3)) == 2:
        year += 1900 if year > 30 else 2000
    if first > 12:
        day, month = first, second
    else:
        month, day = first, second
    return _safe_date(year, month, day)


def normalize_gender(value: str) -> str:
    lowered = value.strip().lower()
    if lowered in ("m", "male"):
        return "male"
    if lowered in ("f", "female"):
        return "female"
    return value.strip()


def normalize_phone(value: str) -> str:
    digits = re.sub(r"\D", "", value)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return value.strip()


def _safe_date(year: int, month: int, day: int) -> str | None:
    if not 1900 <= year <= 2100:
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _require_object(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ExtractionValidationError(f"'{key}' must be an object")
    return value


def _optional_string(raw: dict[str, Any], group: str, key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    # Numeric scalars (a phone number sent as a number) are kept as text.
    if isinstance(value, float) and value.is_integer():
        value = str(int(value))
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ExtractionValidationError(f"'{group}.{key}' must be a string or null")
    stripped = value.strip()
    if not stripped or stripped.lower() == "null":
        return None
    return stripped


def _date_of_birth(raw: dict[str, Any]) -> str | None:
    value = _optional_string(raw, "patient", "dateOfBirth")
    return normalize_date(value) if value is not None else None


def _gender(raw: dict[str, Any]) -> str | None:
    value = _optional_string(raw, "patient", "gender")
    return normalize_gender(value) if value is not None else None


def _confidence(raw: Any) -> float:
    if raw is None:
        return DEFAULT_CONFIDENCE
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ExtractionValidationError("'confidence' must be a number")
    return min(1.0, max(0.0, float(raw)))
