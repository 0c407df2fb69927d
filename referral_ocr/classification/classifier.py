"""Keyword heuristic that labels recognized text with a document type."""

from referral_ocr.database.models import DocumentType

REFERRAL_KEYWORDS: tuple[str, ...] = (
    "referral",
    "referring physician",
    "referred by",
    "consultation request",
    "dear doctor",
    "to whom it may concern",
    "please see",
    "evaluation requested",
)

LAB_RESULT_KEYWORDS: tuple[str, ...] = (
    "laboratory",
    "lab result",
    "test result",
    "specimen",
    "reference range",
    "normal range",
    "abnormal",
    "blood test",
    "urinalysis",
    "cbc",
    "cmp",
    "lipid panel",
    "hemoglobin",
    "glucose",
    "cholesterol",
)

INTAKE_FORM_KEYWORDS: tuple[str, ...] = (
    "patient information",
    "intake form",
    "registration form",
    "medical history",
    "emergency contact",
    "insurance information",
    "primary care physician",
    "allergies",
    "current medications",
    "past medical history",
)

# Checked in order; the first set with any hit wins.
_PRIORITY: tuple[tuple[DocumentType, tuple[str, ...]], ...] = (
    (DocumentType.REFERRAL, REFERRAL_KEYWORDS),
    (DocumentType.LAB_RESULT, LAB_RESULT_KEYWORDS),
    (DocumentType.INTAKE_FORM, INTAKE_FORM_KEYWORDS),
)


def classify(text: str) -> DocumentType:
    lowered = text.lower()
    for document_type, keywords in _PRIORITY:
        if any(keyword in lowered for keyword in keywords):
            return document_type
    return DocumentType.UNKNOWN
