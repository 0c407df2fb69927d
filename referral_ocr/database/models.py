from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class ProcessingStatus(str, Enum):
    """Lifecycle of one recognition attempt."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_finished(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)


class ResolutionStatus(str, Enum):
    """Reviewer decision on a processed scan. Every non-pending state is terminal."""

    PENDING = "pending"
    CREATED_PATIENT = "created_patient"
    ADDED_TO_PATIENT = "added_to_patient"
    SKIPPED = "skipped"


class MappingStatus(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    REJECTED = "rejected"


class DocumentType(str, Enum):
    REFERRAL = "referral"
    LAB_RESULT = "lab_result"
    INTAKE_FORM = "intake_form"
    UNKNOWN = "unknown"


class FieldName(str, Enum):
    """Vocabulary of reviewable fields, named as they appear in the payload."""

    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    DATE_OF_BIRTH = "dateOfBirth"
    PHONE = "phone"
    GENDER = "gender"
    REFERRING_PHYSICIAN = "referringPhysician"
    REFERRING_FACILITY = "referringFacility"
    REASON_FOR_REFERRAL = "reasonForReferral"


@dataclass(frozen=True)
class ReferralScanRecord:
    """Represents a row from the referral_scans table."""

    id: UUID
    uploaded_by: UUID
    filename: str
    original_name: str
    mime_type: str
    file_size: int
    created_at: datetime | None = None


@dataclass
class OcrResultRecord:
    """Represents a row from the referral_ocr_results table."""

    id: UUID
    referral_scan_id: UUID
    processing_status: ProcessingStatus
    resolution_status: ResolutionStatus
    raw_text: str | None = None
    confidence_score: float | None = None
    document_type: DocumentType | None = None
    extracted_data: dict[str, Any] | None = None
    matched_patient_id: UUID | None = None
    match_confidence: float | None = None
    error_message: str | None = None
    processed_at: datetime | None = None
    resolved_patient_id: UUID | None = None
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class FieldMappingRecord:
    """Represents a row from the ocr_field_mappings table."""

    id: UUID
    ocr_result_id: UUID
    field_name: FieldName
    extracted_value: str
    status: MappingStatus
    patient_id: UUID | None = None
    original_value: str | None = None
    confidence_score: float | None = None
    applied_at: datetime | None = None
    applied_by: UUID | None = None
    created_at: datetime | None = None
