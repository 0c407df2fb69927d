from referral_ocr.database.models import FieldName
from referral_ocr.extraction.models import (
    ExtractedData,
    ExtractionOutcome,
    PatientFields,
    ReferralFields,
)


def _make_data() -> ExtractedData:
    return ExtractedData(
        patient=PatientFields(first_name="Jane", date_of_birth="1980-01-01"),
        referral=ReferralFields(reason_for_referral="Knee pain"),
        confidence=0.75,
        raw_analysis="{}",
    )


class TestExtractedData:
    def test_non_null_fields_in_vocabulary_order(self) -> None:
        assert _make_data().non_null_fields() == [
            (FieldName.FIRST_NAME, "Jane"),
            (FieldName.DATE_OF_BIRTH, "1980-01-01"),
            (FieldName.REASON_FOR_REFERRAL, "Knee pain"),
        ]

    def test_proposals_prefer_field_confidence(self) -> None:
        data = ExtractedData(
            patient=PatientFields(first_name="Jane", date_of_birth="1980-01-01"),
            confidence=0.7,
            field_confidence={FieldName.FIRST_NAME: 0.95},
        )

        assert data.proposals() == [
            (FieldName.FIRST_NAME, "Jane", 0.95),
            (FieldName.DATE_OF_BIRTH, "1980-01-01", 0.7),
        ]
        assert data.to_payload("heuristic")["fieldConfidence"] == {"firstName": 0.95}

    def test_has_identity(self) -> None:
        assert _make_data().has_identity is True
        assert ExtractedData(referral=ReferralFields(referring_physician="Dr. A")).has_identity is False

    def test_payload_uses_camel_case_keys(self) -> None:
        payload = _make_data().to_payload("ai")

        assert payload["patient"]["firstName"] == "Jane"
        assert payload["patient"]["lastName"] is None
        assert payload["referral"]["reasonForReferral"] == "Knee pain"
        assert payload["confidence"] == 0.75
        assert payload["rawAnalysis"] == "{}"
        assert payload["method"] == "ai"


class TestExtractionOutcome:
    def test_degraded_result_is_empty(self) -> None:
        outcome = ExtractionOutcome.degraded_result("backend down")

        assert outcome.degraded is True
        assert outcome.data.confidence == 0.0
        assert outcome.data.raw_analysis == "backend down"
        assert outcome.data.non_null_fields() == []

    def test_payload_records_degradation(self) -> None:
        payload = ExtractionOutcome.degraded_result("backend down").to_payload()

        assert payload["degraded"] is True
        assert payload["method"] == "ai"
        assert payload["rawAnalysis"] == "backend down"
