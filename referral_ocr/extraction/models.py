from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from referral_ocr.database.models import FieldName


@dataclass(frozen=True)
class PatientFields:
    """Patient identity as read from the letter. Any field may be missing."""

    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: str | None = None
    phone: str | None = None
    gender: str | None = None


@dataclass(frozen=True)
class ReferralFields:
    referring_physician: str | None = None
    referring_facility: str | None = None
    reason_for_referral: str | None = None


_PATIENT_ATTRS: tuple[tuple[FieldName, str], ...] = (
    (FieldName.FIRST_NAME, "first_name"),
    (FieldName.LAST_NAME, "last_name"),
    (FieldName.DATE_OF_BIRTH, "date_of_birth"),
    (FieldName.PHONE, "phone"),
    (FieldName.GENDER, "gender"),
)

_REFERRAL_ATTRS: tuple[tuple[FieldName, str], ...] = (
    (FieldName.REFERRING_PHYSICIAN, "referring_physician"),
    (FieldName.REFERRING_FACILITY, "referring_facility"),
    (FieldName.REASON_FOR_REFERRAL, "reason_for_referral"),
)


@dataclass(frozen=True)
class ExtractedData:
    """Candidate patient/referral record with the extractor's own confidence (0-1)."""

    patient: PatientFields = field(default_factory=PatientFields)
    referral: ReferralFields = field(default_factory=ReferralFields)
    confidence: float = 0.0
    raw_analysis: str = ""
    # Per-field overrides of confidence, for extractors that score each match.
    field_confidence: Mapping[FieldName, float] = field(default_factory=dict)

    @classmethod
    def empty(cls, analysis: str) -> "ExtractedData":
        return cls(confidence=0.0, raw_analysis=analysis)

    def non_null_fields(self) -> list[tuple[FieldName, str]]:
        """(field, value) pairs for every field that was found, in vocabulary order."""
        found: list[tuple[FieldName, str]] = []
        for name, attr in _PATIENT_ATTRS:
            value = getattr(self.patient, attr)
            if value is not None:
                found.append((name, value))
        for name, attr in _REFERRAL_ATTRS:
            value = getattr(self.referral, attr)
            if value is not None:
                found.append((name, value))
        return found

    def proposals(self) -> list[tuple[FieldName, str, float]]:
        """(field, value, confidence) for every found field, in vocabulary order."""
        return [
            (name, value, self.field_confidence.get(name, self.confidence))
            for name, value in self.non_null_fields()
        ]

    @property
    def has_identity(self) -> bool:
        return any(
            value is not None
            for value in (self.patient.first_name, self.patient.last_name, self.patient.date_of_birth)
        )

    def to_payload(self, method: str) -> dict[str, Any]:
        """JSON-serializable form persisted in referral_ocr_results.extracted_data."""
        return {
            "patient": {name.value: getattr(self.patient, attr) for name, attr in _PATIENT_ATTRS},
            "referral": {name.value: getattr(self.referral, attr) for name, attr in _REFERRAL_ATTRS},
            "confidence": self.confidence,
            "fieldConfidence": {name.value: score for name, score in self.field_confidence.items()},
            "rawAnalysis": self.raw_analysis,
            "method": method,
        }


@dataclass(frozen=True)
class ExtractionOutcome:
    """Result of an extraction attempt.

    There is no error variant: a backend that is missing, unreachable or
    returns garbage produces ``degraded=True`` with empty fields, confidence 0
    and the reason in ``data.raw_analysis``.
    """

    data: ExtractedData
    degraded: bool = False
    method: str = "ai"

    @classmethod
    def degraded_result(cls, analysis: str) -> "ExtractionOutcome":
        return cls(data=ExtractedData.empty(analysis), degraded=True)

    def to_payload(self) -> dict[str, Any]:
        payload = self.data.to_payload(self.method)
        payload["degraded"] = self.degraded
        return payload
