from pathlib import Path
from uuid import UUID

from referral_ocr.config.settings import Settings
from referral_ocr.database.repositories.field_mapping_repository import FieldMappingRepository
from referral_ocr.database.repositories.ocr_result_repository import OcrResultRepository
from referral_ocr.database.repositories.referral_scan_repository import ReferralScanRepository
from referral_ocr.extraction.factory import ExtractorFactory
from referral_ocr.extraction.heuristics import HeuristicFieldExtractor
from referral_ocr.imaging.factory import RasterizerFactory
from referral_ocr.imaging.normalizer import InputNormalizer
from referral_ocr.logging.logger import Log
from referral_ocr.processor.file_loader import FileLoader
from referral_ocr.processor.pipeline import PipelineContext, PipelineStep
from referral_ocr.processor.steps import (
    AggregatePagesStep,
    ClassifyStep,
    ExtractFieldsStep,
    LoadScanStep,
    MarkFailedStep,
    MatchPatientStep,
    NormalizeInputStep,
    PersistResultStep,
    RecognizePagesStep,
)
from referral_ocr.recognition.engine import BaseRecognitionEngine
from referral_ocr.review.patients import BasePatientDirectory


class Processor:
    """Runs the scan pipeline for one claimed OCR result.

    Pipeline: load -> normalize -> recognize -> aggregate -> classify ->
    extract -> match -> persist. Any step error runs the failure step and
    re-raises the step error, even when the failure step itself fails.
    """

    def __init__(self, steps: list[PipelineStep], failed_step: PipelineStep) -> None:
        self._steps = steps
        self._failed_step = failed_step

    def process(self, ocr_result_id: UUID, referral_scan_id: UUID) -> PipelineContext:
        Log.info(f"Processing OCR result {ocr_result_id} for scan {referral_scan_id}")
        context = PipelineContext(ocr_result_id=ocr_result_id, referral_scan_id=referral_scan_id)
        try:
            for step in self._steps:
                context = step.run(context)
        except Exception as exc:
            context.error_message = str(exc) or type(exc).__name__
            try:
                self._failed_step.run(context)
            except Exception:
                Log.exception(f"Could not record failure for OCR result {ocr_result_id}")
            raise
        return context


def build_processor(
    settings: Settings,
    engine: BaseRecognitionEngine,
    files_root: Path | None = None,
    patients: BasePatientDirectory | None = None,
) -> Processor:
    """Build a Processor with all required adapters around a shared engine.

    Patient matching runs only when a patient directory is given.
    """
    ocr_repo = OcrResultRepository()
    normalizer = InputNormalizer(
        rasterizer=RasterizerFactory.create(settings),
        render_scale=settings.pdf_render_scale,
    )
    fallback = HeuristicFieldExtractor() if settings.heuristic_fallback_enabled else None
    steps: list[PipelineStep] = [
        LoadScanStep(
            file_loader=FileLoader(files_root=files_root or settings.files_root),
            scan_repo=ReferralScanRepository(),
        ),
        NormalizeInputStep(normalizer=normalizer),
        RecognizePagesStep(engine=engine),
        AggregatePagesStep(),
        ClassifyStep(),
        ExtractFieldsStep(extractor=ExtractorFactory.create(settings), fallback=fallback),
    ]
    if patients is not None:
        steps.append(MatchPatientStep(patients=patients))
    steps.append(PersistResultStep(ocr_repo=ocr_repo, mapping_repo=FieldMappingRepository()))
    return Processor(steps=steps, failed_step=MarkFailedStep(ocr_repo))
