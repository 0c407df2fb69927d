"""Reviewer-facing operations: field mapping decisions and scan resolution.

Every transition is a single conditional UPDATE on the current status, so two
reviewers acting on the same row get exactly one winner and the loser sees
InvalidStateError / AlreadyResolvedError. Nothing here retries.
"""

from uuid import UUID

from referral_ocr.database.connection import transaction
from referral_ocr.database.models import (
    FieldMappingRecord,
    FieldName,
    MappingStatus,
    OcrResultRecord,
    ResolutionStatus,
)
from referral_ocr.database.repositories.field_mapping_repository import FieldMappingRepository
from referral_ocr.database.repositories.ocr_result_repository import OcrResultRepository
from referral_ocr.logging.logger import Log
from referral_ocr.review.exceptions import NotFoundError
from referral_ocr.review.patients import BasePatientDirectory, Patient, PatientInput


class ReviewService:
    def __init__(
        self,
        ocr_repo: OcrResultRepository,
        mapping_repo: FieldMappingRepository,
        patients: BasePatientDirectory,
    ) -> None:
        self._ocr_repo = ocr_repo
        self._mapping_repo = mapping_repo
        self._patients = patients

    def get_ocr_result(self, ocr_result_id: UUID) -> OcrResultRecord | None:
        return self._ocr_repo.find_by_id(ocr_result_id)

    def get_ocr_result_for_scan(self, scan_id: UUID) -> OcrResultRecord | None:
        return self._ocr_repo.find_latest_for_scan(scan_id)

    def list_pending_reviews(self) -> list[OcrResultRecord]:
        return self._ocr_repo.find_pending_reviews()

    def list_field_mappings(self, ocr_result_id: UUID) -> list[FieldMappingRecord]:
        return self._mapping_repo.list_for_result(ocr_result_id)

    def apply_mapping(self, mapping_id: UUID, applied_by: UUID) -> FieldMappingRecord:
        """Accept one proposed field value.

        Raises:
            NotFoundError: unknown mapping.
            InvalidStateError: mapping already applied or rejected.
        """
        mapping = self._mapping_repo.transition(mapping_id, MappingStatus.APPLIED, applied_by)
        Log.info(f"Field mapping {mapping_id} ({mapping.field_name.value}) applied by {applied_by}")
        return mapping

    def reject_mapping(self, mapping_id: UUID, applied_by: UUID) -> FieldMappingRecord:
        """Reject one proposed field value. Same guards as apply_mapping."""
        mapping = self._mapping_repo.transition(mapping_id, MappingStatus.REJECTED, applied_by)
        Log.info(f"Field mapping {mapping_id} ({mapping.field_name.value}) rejected by {applied_by}")
        return mapping

    def resolve_as_created(
        self,
        ocr_result_id: UUID,
        new_patient_id: UUID,
        actor_id: UUID,
    ) -> OcrResultRecord:
        """Link the scan and its field mappings to a patient the caller has just created.

        Callers that still have to create the patient should use
        create_patient_and_resolve so a double submission cannot leave an
        orphaned patient behind.
        """
        with transaction() as conn:
            result = self._ocr_repo.resolve(
                ocr_result_id,
                ResolutionStatus.CREATED_PATIENT,
                actor_id,
                patient_id=new_patient_id,
                conn=conn,
            )
            self._mapping_repo.attach_patient(ocr_result_id, new_patient_id, {}, conn=conn)
        Log.info(f"OCR result {ocr_result_id} resolved: created patient {new_patient_id}")
        return result

    def create_patient_and_resolve(
        self,
        ocr_result_id: UUID,
        patient_input: PatientInput,
        actor_id: UUID,
    ) -> tuple[Patient, OcrResultRecord]:
        """Create a patient from reviewed fields and resolve the scan in one step.

        The OCR result row stays locked from the pending check until the
        resolution is written, so the patient is only created by the winner.

        Raises:
            NotFoundError: unknown OCR result.
            AlreadyResolvedError: raised before any patient is created.
        """
        with transaction() as conn:
            self._ocr_repo.lock_pending(conn, ocr_result_id)
            patient = self._patients.create(patient_input, actor_id)
            result = self._ocr_repo.resolve(
                ocr_result_id,
                ResolutionStatus.CREATED_PATIENT,
                actor_id,
                patient_id=patient.id,
                conn=conn,
            )
            self._mapping_repo.attach_patient(ocr_result_id, patient.id, {}, conn=conn)
        Log.info(f"OCR result {ocr_result_id} resolved: created patient {patient.id}")
        return patient, result

    def resolve_as_added(
        self,
        ocr_result_id: UUID,
        existing_patient_id: UUID,
        actor_id: UUID,
    ) -> OcrResultRecord:
        """Link the scan and its field mappings to an existing patient.

        Each mapping keeps the patient's value at resolution time as its
        original_value.

        Raises:
            NotFoundError: unknown OCR result or patient.
            AlreadyResolvedError: the scan was already resolved.
        """
        patient = self._patients.find_by_id(existing_patient_id)
        if patient is None:
            raise NotFoundError(f"Patient {existing_patient_id} not found")
        originals = {name: patient.value_for(name) for name in FieldName}
        with transaction() as conn:
            result = self._ocr_repo.resolve(
                ocr_result_id,
                ResolutionStatus.ADDED_TO_PATIENT,
                actor_id,
                patient_id=existing_patient_id,
                conn=conn,
            )
            self._mapping_repo.attach_patient(
                ocr_result_id, existing_patient_id, originals, conn=conn
            )
        Log.info(f"OCR result {ocr_result_id} resolved: added to patient {existing_patient_id}")
        return result

    def resolve_as_skipped(self, ocr_result_id: UUID, actor_id: UUID) -> OcrResultRecord:
        result = self._ocr_repo.resolve(ocr_result_id, ResolutionStatus.SKIPPED, actor_id)
        Log.info(f"OCR result {ocr_result_id} skipped by {actor_id}")
        return result
