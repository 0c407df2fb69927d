from referral_ocr.classification.classifier import classify
from referral_ocr.database.connection import transaction
from referral_ocr.database.repositories.field_mapping_repository import FieldMappingRepository
from referral_ocr.database.repositories.ocr_result_repository import OcrResultRepository
from referral_ocr.database.repositories.referral_scan_repository import ReferralScanRepository
from referral_ocr.extraction.base import BaseFieldExtractor
from referral_ocr.imaging.normalizer import InputNormalizer
from referral_ocr.logging.logger import Log
from referral_ocr.processor.exceptions import ClaimLostError
from referral_ocr.processor.file_loader import FileLoader
from referral_ocr.processor.pipeline import PipelineContext, PipelineStep
from referral_ocr.recognition.aggregator import aggregate
from referral_ocr.recognition.engine import BaseRecognitionEngine
from referral_ocr.review.patients import BasePatientDirectory


class MarkFailedStep(PipelineStep):
    def __init__(self, ocr_repo: OcrResultRepository) -> None:
        self._ocr_repo = ocr_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        if self._ocr_repo.mark_failed(context.ocr_result_id, context.error_message):
            Log.error(
                f"OCR result {context.ocr_result_id} marked as failed: {context.error_message}"
            )
        else:
            Log.warning(
                f"OCR result {context.ocr_result_id} was no longer processing; "
                f"failure not recorded: {context.error_message}"
            )
        return context


class LoadScanStep(PipelineStep):
    def __init__(self, file_loader: FileLoader, scan_repo: ReferralScanRepository) -> None:
        self._file_loader = file_loader
        self._scan_repo = scan_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        scan = self._scan_repo.find_by_id(context.referral_scan_id)
        context.scan = scan
        context.scan_path = self._file_loader.resolve(scan)
        Log.info(
            f"Loaded scan {scan.id} ({scan.original_name}, {scan.mime_type}, "
            f"{scan.file_size} bytes)"
        )
        return context


class NormalizeInputStep(PipelineStep):
    def __init__(self, normalizer: InputNormalizer) -> None:
        self._normalizer = normalizer

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.scan is None or context.scan_path is None:
            raise ValueError("PipelineContext.scan must be loaded before normalization")
        context.page_images = self._normalizer.normalize(context.scan_path, context.scan.mime_type)
        return context


class RecognizePagesStep(PipelineStep):
    def __init__(self, engine: BaseRecognitionEngine) -> None:
        self._engine = engine

    def run(self, context: PipelineContext) -> PipelineContext:
        context.pages = []
        for number, image in enumerate(context.page_images, start=1):
            page = self._engine.recognize(image)
            context.pages.append(page)
            Log.info(
                f"Recognized page {number}/{len(context.page_images)} of scan "
                f"{context.referral_scan_id}: {len(page.text)} chars, "
                f"confidence {page.confidence:.1f}"
            )
        return context


class AggregatePagesStep(PipelineStep):
    def run(self, context: PipelineContext) -> PipelineContext:
        context.aggregated = aggregate(context.pages)
        Log.info(
            f"Aggregated {context.aggregated.page_count} page(s) for OCR result "
            f"{context.ocr_result_id}: confidence {context.aggregated.confidence:.2f}"
        )
        return context


class ClassifyStep(PipelineStep):
    def run(self, context: PipelineContext) -> PipelineContext:
        if context.aggregated is None:
            raise ValueError("PipelineContext.aggregated must be set before classification")
        context.document_type = classify(context.aggregated.full_text)
        Log.info(f"Classified OCR result {context.ocr_result_id} as {context.document_type.value}")
        return context


class ExtractFieldsStep(PipelineStep):
    """Runs the structured extractor; a degraded outcome is kept, never raised.

    When a fallback extractor is given it is tried whenever the primary
    outcome is degraded or names no patient. A non-degraded fallback
    replaces a degraded outcome; an identity-less one is replaced only
    by a fallback that names the patient.
    """

    def __init__(
        self,
        extractor: BaseFieldExtractor,
        fallback: BaseFieldExtractor | None = None,
    ) -> None:
        self._extractor = extractor
        self._fallback = fallback

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.aggregated is None:
            raise ValueError("PipelineContext.aggregated must be set before extraction")
        text = context.aggregated.full_text
        outcome = self._extractor.extract(text)

        if outcome.degraded:
            Log.warning(
                f"Extraction degraded for OCR result {context.ocr_result_id}: "
                f"{outcome.data.raw_analysis}"
            )

        if self._fallback is not None and (outcome.degraded or not outcome.data.has_identity):
            fallback_outcome = self._fallback.extract(text)
            if not fallback_outcome.degraded and (
                outcome.degraded or fallback_outcome.data.has_identity
            ):
                Log.info(f"Heuristic fallback used for OCR result {context.ocr_result_id}")
                outcome = fallback_outcome

        context.outcome = outcome
        return context


class MatchPatientStep(PipelineStep):
    """Looks up an existing patient for the extracted identity. Lookup errors fail the run."""

    def __init__(self, patients: BasePatientDirectory) -> None:
        self._patients = patients

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.outcome is None:
            raise ValueError("PipelineContext.outcome must be set before patient matching")
        patient = context.outcome.data.patient
        context.match = self._patients.find_match(
            patient.first_name, patient.last_name, patient.date_of_birth
        )
        if context.match is not None:
            Log.info(
                f"OCR result {context.ocr_result_id} matched patient "
                f"{context.match.patient.id} (score {context.match.score:.2f})"
            )
        return context


class PersistResultStep(PipelineStep):
    """Completes the OCR result and proposes its field mappings in one transaction."""

    def __init__(
        self,
        ocr_repo: OcrResultRepository,
        mapping_repo: FieldMappingRepository,
    ) -> None:
        self._ocr_repo = ocr_repo
        self._mapping_repo = mapping_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.aggregated is None or context.outcome is None:
            raise ValueError("PipelineContext.aggregated and outcome must be set before persist")

        data = context.outcome.data
        with transaction() as conn:
            completed = self._ocr_repo.mark_completed(
                context.ocr_result_id,
                raw_text=context.aggregated.full_text,
                confidence_score=context.aggregated.confidence,
                document_type=context.document_type,
                extracted_data=context.outcome.to_payload(),
                matched_patient_id=context.match.patient.id if context.match else None,
                match_confidence=context.match.confidence if context.match else None,
                conn=conn,
            )
            if not completed:
                raise ClaimLostError(
                    f"OCR result {context.ocr_result_id} is no longer processing"
                )
            mappings = self._mapping_repo.insert_many(
                context.ocr_result_id, data.proposals(), conn=conn
            )

        context.mapping_count = len(mappings)
        Log.info(
            f"OCR result {context.ocr_result_id} completed: "
            f"{context.mapping_count} field mapping(s) proposed"
        )
        return context
