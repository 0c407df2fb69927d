"""Patient directory collaborator. The worker never owns patient data."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import UUID

from referral_ocr.database.models import FieldName

LAST_NAME_WEIGHT = 0.4
FIRST_NAME_WEIGHT = 0.3
DATE_OF_BIRTH_WEIGHT = 0.5
MATCH_THRESHOLD = 0.5


@dataclass(frozen=True)
class Patient:
    id: UUID
    first_name: str
    last_name: str
    date_of_birth: str | None = None
    phone: str | None = None
    gender: str | None = None
    mrn: str | None = None

    def value_for(self, field_name: FieldName) -> str | None:
        """Current value of a reviewable field on this record; None for referral fields."""
        values = {
            FieldName.FIRST_NAME: self.first_name,
            FieldName.LAST_NAME: self.last_name,
            FieldName.DATE_OF_BIRTH: self.date_of_birth,
            FieldName.PHONE: self.phone,
            FieldName.GENDER: self.gender,
        }
        return values.get(field_name)


@dataclass(frozen=True)
class PatientInput:
    """Fields a reviewer confirmed for a new patient record."""

    first_name: str
    last_name: str
    date_of_birth: str | None = None
    phone: str | None = None
    gender: str | None = None


@dataclass(frozen=True)
class PatientMatch:
    patient: Patient
    score: float

    @property
    def confidence(self) -> float:
        """Score clamped to the 0-1 range stored with the OCR result."""
        return min(1.0, self.score)


def match_score(
    patient: Patient,
    first_name: str | None,
    last_name: str | None,
    date_of_birth: str | None,
) -> float:
    """Weighted exact-match score: last name 0.4, first name 0.3, date of birth 0.5."""
    score = 0.0
    if last_name and patient.last_name.lower() == last_name.lower():
        score += LAST_NAME_WEIGHT
    if first_name and patient.first_name.lower() == first_name.lower():
        score += FIRST_NAME_WEIGHT
    if date_of_birth and patient.date_of_birth == date_of_birth:
        score += DATE_OF_BIRTH_WEIGHT
    return round(score, 4)


class BasePatientDirectory(ABC):
    """Contract for the host application's patient store."""

    @abstractmethod
    def find_by_id(self, patient_id: UUID) -> Patient | None:
        """Return the patient, or None if no such patient exists."""

    @abstractmethod
    def create(self, patient_input: PatientInput, created_by: UUID) -> Patient:
        """Create a patient record and return it."""

    @abstractmethod
    def find_candidates(
        self,
        first_name: str | None,
        last_name: str | None,
        date_of_birth: str | None,
    ) -> list[Patient]:
        """Active patients sharing at least one of the given values."""

    def find_match(
        self,
        first_name: str | None,
        last_name: str | None,
        date_of_birth: str | None,
    ) -> PatientMatch | None:
        """Best-scoring candidate at or above MATCH_THRESHOLD, or None."""
        if not (first_name or last_name or date_of_birth):
            return None
        best: PatientMatch | None = None
        for patient in self.find_candidates(first_name, last_name, date_of_birth):
            score = match_score(patient, first_name, last_name, date_of_birth)
            if score >= MATCH_THRESHOLD and (best is None or score > best.score):
                best = PatientMatch(patient=patient, score=score)
        return best
