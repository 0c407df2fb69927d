"""Regex extraction used when the AI backend gives nothing back.

Labels are matched case-insensitively; names must be capitalized so that
ordinary prose after a label is not mistaken for a name.
"""

import re

from referral_ocr.database.models import FieldName
from referral_ocr.extraction.base import BaseFieldExtractor
from referral_ocr.extraction.models import (
    ExtractedData,
    ExtractionOutcome,
    PatientFields,
    ReferralFields,
)
from referral_ocr.extraction.validator import normalize_date, normalize_gender, normalize_phone

LABELLED_NAME_CONFIDENCE = 0.95

_FIELD_CONFIDENCE: dict[FieldName, float] = {
    FieldName.DATE_OF_BIRTH: 0.9,
    FieldName.PHONE: 0.9,
    FieldName.GENDER: 0.95,
    FieldName.REFERRING_PHYSICIAN: 0.85,
    FieldName.REFERRING_FACILITY: 0.8,
    FieldName.REASON_FOR_REFERRAL: 0.85,
}

_NAME = r"([A-Z][a-zA-Z\-']+)"
_TITLE = r"(?i:(?:mr|mrs|ms|miss|dr)\.?\s+)?"

# Strongest first; the first pattern that matches supplies both names.
_FULL_NAME_PATTERNS: tuple[tuple[re.Pattern[str], float], ...] = (
    (re.compile(rf"(?:^|\n)[ \t]*(?i:re)[:\s]+{_TITLE}{_NAME}[ \t]+{_NAME}"), 0.95),
    (re.compile(rf"(?i:patient(?:\s*name)?)\s*[:\-]\s*{_TITLE}{_NAME}[ \t]+{_NAME}"), 0.95),
    (
        re.compile(
            rf"(?i:dear\s+(?:dr\.?|doctor)\s+[a-z\-']+[,\s]+(?:i\s+am\s+)?"
            rf"(?:referring|writing\s+(?:to\s+)?refer))\s+{_TITLE}{_NAME}[ \t]+{_NAME}"
        ),
        0.90,
    ),
    (re.compile(rf"(?i:seeing|reviewing|assessing)\s+{_TITLE}{_NAME}[ \t]+{_NAME}"), 0.80),
)

_FIRST_NAME = re.compile(rf"(?i:first\s*name|given\s*name)\s*[:\-]?\s*{_NAME}")
_LAST_NAME = re.compile(rf"(?i:last\s*name|surname|family\s*name)\s*[:\-]?\s*{_NAME}")
_DATE_OF_BIRTH = re.compile(
    r"(?i:d\.?o\.?b\.?|date\s*of\s*birth|birth\s*date|birthdate)\s*[:\-]?\s*"
    r"(\d{4}[/-]\d{1,2}[/-]\d{1,2}|\d{1,2}[/-]\d{1,2}[/-]\d{2,4})"
)
_GENDER = re.compile(r"(?i:gender|sex)\s*[:\-]?\s*(?i:(male|female|m|f))\b")
_PHONE = re.compile(
    r"(?i:phone|tel(?:ephone)?|mobile|cell)\s*[:\-]?\s*(\(?\d{3}\)?[\s.\-]?\d{3}[\s.\-]?\d{4})"
)
_REFERRING_PHYSICIAN = re.compile(
    r"(?i:referring\s*(?:physician|doctor|provider)|referred\s*by)\s*[:\-]?\s*"
    r"(?i:dr\.?\s*)?([A-Z][a-zA-Z\-']+(?:[ \t]+[A-Z][a-zA-Z\-']+)+)"
)
_REFERRING_FACILITY = re.compile(
    r"(?i:referring\s*(?:facility|hospital|clinic|practice))\s*[:\-]?\s*([A-Z][A-Za-z&'\- \t]+)"
)
_REASON = re.compile(
    r"(?i:reason\s*for\s*referral|referral\s*reason|chief\s*complaint|reason\s*for\s*visit)"
    r"\s*[:\-]?\s*([^\n]+)"
)


def _capitalize(name: str) -> str:
    return name[:1].upper() + name[1:].lower()


def _first_group(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if match is None:
        return None
    value = match.group(1).strip()
    return value or None


class HeuristicFieldExtractor(BaseFieldExtractor):
    """Pattern-based extractor over the same field vocabulary as the AI extractor.

    Each field carries the confidence of the pattern that found it; the
    overall confidence is their mean.
    """

    def extract(self, text: str) -> ExtractionOutcome:
        scores: dict[FieldName, float] = {}
        first_name, last_name = self._names(text, scores)

        dob_raw = _first_group(_DATE_OF_BIRTH, text)
        date_of_birth = normalize_date(dob_raw) if dob_raw else None
        gender_raw = _first_group(_GENDER, text)
        phone_raw = _first_group(_PHONE, text)
        reason = _first_group(_REASON, text)

        patient = PatientFields(
            first_name=first_name,
            last_name=last_name,
            date_of_birth=date_of_birth,
            phone=normalize_phone(phone_raw) if phone_raw else None,
            gender=normalize_gender(gender_raw) if gender_raw else None,
        )
        referral = ReferralFields(
            referring_physician=_first_group(_REFERRING_PHYSICIAN, text),
            referring_facility=_first_group(_REFERRING_FACILITY, text),
            reason_for_referral=re.sub(r"\s+", " ", reason) if reason else None,
        )
        for name, value in (
            (FieldName.DATE_OF_BIRTH, patient.date_of_birth),
            (FieldName.PHONE, patient.phone),
            (FieldName.GENDER, patient.gender),
            (FieldName.REFERRING_PHYSICIAN, referral.referring_physician),
            (FieldName.REFERRING_FACILITY, referral.referring_facility),
            (FieldName.REASON_FOR_REFERRAL, referral.reason_for_referral),
        ):
            if value is not None:
                scores[name] = _FIELD_CONFIDENCE[name]

        confidence = round(sum(scores.values()) / len(scores), 4) if scores else 0.0
        data = ExtractedData(
            patient=patient,
            referral=referral,
            confidence=confidence,
            raw_analysis=f"Heuristic extraction matched {len(scores)} field(s)",
            field_confidence=scores,
        )
        return ExtractionOutcome(data=data, degraded=not scores, method="heuristic")

    @staticmethod
    def _names(text: str, scores: dict[FieldName, float]) -> tuple[str | None, str | None]:
        first_name: str | None = None
        last_name: str | None = None
        for pattern, confidence in _FULL_NAME_PATTERNS:
            match = pattern.search(text)
            if match:
                first_name, last_name = _capitalize(match.group(1)), _capitalize(match.group(2))
                scores[FieldName.FIRST_NAME] = confidence
                scores[FieldName.LAST_NAME] = confidence
                break

        # Explicit labels beat names read out of prose.
        labelled_first = _first_group(_FIRST_NAME, text)
        labelled_last = _first_group(_LAST_NAME, text)
        if labelled_first:
            first_name = _capitalize(labelled_first)
            scores[FieldName.FIRST_NAME] = LABELLED_NAME_CONFIDENCE
        if labelled_last:
            last_name = _capitalize(labelled_last)
            scores[FieldName.LAST_NAME] = LABELLED_NAME_CONFIDENCE
        return first_name, last_name
