import uuid
from uuid import UUID

from referral_ocr.database.models import FieldName
from referral_ocr.review.patients import (
    MATCH_THRESHOLD,
    BasePatientDirectory,
    Patient,
    PatientInput,
    match_score,
)

JANE = Patient(id=uuid.uuid4(), first_name="Jane", last_name="Doe", date_of_birth="1980-01-01")
JOHN = Patient(id=uuid.uuid4(), first_name="John", last_name="Doe", date_of_birth="1975-03-04")


class _ListDirectory(BasePatientDirectory):
    """Directory over a fixed list; candidates are every listed patient."""

    def __init__(self, patients: list[Patient]) -> None:
        self._patients = patients
        self.candidate_calls = 0

    def find_by_id(self, patient_id: UUID) -> Patient | None:
        return next((p for p in self._patients if p.id == patient_id), None)

    def create(self, patient_input: PatientInput, created_by: UUID) -> Patient:
        raise NotImplementedError

    def find_candidates(
        self,
        first_name: str | None,
        last_name: str | None,
        date_of_birth: str | None,
    ) -> list[Patient]:
        self.candidate_calls += 1
        return list(self._patients)


class TestMatchScore:
    def test_full_match_exceeds_one(self) -> None:
        assert match_score(JANE, "Jane", "Doe", "1980-01-01") == 1.2

    def test_names_compare_case_insensitively(self) -> None:
        assert match_score(JANE, "JANE", "doe", None) == 0.7

    def test_date_of_birth_alone_reaches_threshold(self) -> None:
        assert match_score(JANE, None, None, "1980-01-01") == MATCH_THRESHOLD

    def test_last_name_alone_is_below_threshold(self) -> None:
        assert match_score(JANE, None, "Doe", None) < MATCH_THRESHOLD


class TestFindMatch:
    def test_best_candidate_wins(self) -> None:
        directory = _ListDirectory([JOHN, JANE])

        match = directory.find_match("Jane", "Doe", "1980-01-01")

        assert match is not None
        assert match.patient is JANE
        assert match.score == 1.2
        assert match.confidence == 1.0

    def test_weak_candidates_give_no_match(self) -> None:
        directory = _ListDirectory([JANE, JOHN])

        assert directory.find_match("Mary", "Doe", "1990-09-09") is None

    def test_no_identity_skips_lookup(self) -> None:
        directory = _ListDirectory([JANE])

        assert directory.find_match(None, None, None) is None
        assert directory.candidate_calls == 0


class TestValueFor:
    def test_patient_fields(self) -> None:
        assert JANE.value_for(FieldName.FIRST_NAME) == "Jane"
        assert JANE.value_for(FieldName.PHONE) is None

    def test_referral_fields_have_no_patient_value(self) -> None:
        assert JANE.value_for(FieldName.REFERRING_PHYSICIAN) is None
