from decimal import Decimal
from typing import Any
from uuid import UUID

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from referral_ocr.database.connection import get_connection, use_connection
from referral_ocr.database.models import (
    DocumentType,
    OcrResultRecord,
    ProcessingStatus,
    ResolutionStatus,
)
from referral_ocr.logging.logger import Log
from referral_ocr.review.exceptions import AlreadyResolvedError, NotFoundError


class OcrResultRepository:
    """Database operations for the referral_ocr_results table.

    Status changes are conditional UPDATEs guarded on the current status, so
    the check and the write happen in one statement.
    """

    def insert_pending(self, conn: psycopg.Connection[Any], scan_id: UUID) -> OcrResultRecord:
        """Insert a pending result for a scan on the caller's connection."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                INSERT INTO referral_ocr_results (referral_scan_id)
                VALUES (%s)
                RETURNING *
                """,
                (scan_id,),
            )
            row = cur.fetchone()
        if row is None:
            raise RuntimeError("INSERT INTO referral_ocr_results returned no row")
        return self._to_record(row)

    def find_by_id(self, ocr_result_id: UUID) -> OcrResultRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    "SELECT * FROM referral_ocr_results WHERE id = %s",
                    (ocr_result_id,),
                )
                row = cur.fetchone()
        return self._to_record(row) if row is not None else None

    def find_latest_for_scan(self, scan_id: UUID) -> OcrResultRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT * FROM referral_ocr_results
                    WHERE referral_scan_id = %s
                    ORDER BY created_at DESC
                    LIMIT 1
                    """,
                    (scan_id,),
                )
                row = cur.fetchone()
        return self._to_record(row) if row is not None else None

    def find_pending_reviews(self) -> list[OcrResultRecord]:
        """Completed results still awaiting a reviewer decision, oldest first."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT * FROM referral_ocr_results
                    WHERE resolution_status = 'pending'
                      AND processing_status = 'completed'
                    ORDER BY created_at ASC
                    """
                )
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    def claim(self, ocr_result_id: UUID) -> OcrResultRecord | None:
        """Move a result from pending to processing. None if someone else got it first."""
        with use_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    UPDATE referral_ocr_results
                    SET processing_status = 'processing', updated_at = NOW()
                    WHERE id = %s AND processing_status = 'pending'
                    RETURNING *
                    """,
                    (ocr_result_id,),
                )
                row = cur.fetchone()
        return self._to_record(row) if row is not None else None

    def claim_next_pending(
        self,
        conn: psycopg.Connection[Any],
        stale_after_seconds: int | None = None,
    ) -> OcrResultRecord | None:
        """Claim the oldest pending result using SELECT FOR UPDATE SKIP LOCKED.

        With stale_after_seconds set, a result left in processing for longer
        than that (its runner died or could not record the outcome) is claimed
        again.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, processing_status
                FROM referral_ocr_results
                WHERE processing_status = 'pending'
                   OR (processing_status = 'processing'
                       AND updated_at < NOW() - %(stale)s::int * INTERVAL '1 second')
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                {"stale": stale_after_seconds},
            )
            row = cur.fetchone()

            if row is None:
                conn.commit()
                return None

            if row["processing_status"] == ProcessingStatus.PROCESSING.value:
                Log.warning(
                    f"Reclaiming OCR result {row['id']}: processing for more than "
                    f"{stale_after_seconds}s"
                )
            cur.execute(
                """
                UPDATE referral_ocr_results
                SET processing_status = 'processing', updated_at = NOW()
                WHERE id = %s
                RETURNING *
                """,
                (row["id"],),
            )
            claimed = cur.fetchone()
        conn.commit()
        return self._to_record(claimed) if claimed is not None else None

    def has_unfinished_run(self, conn: psycopg.Connection[Any], scan_id: UUID) -> bool:
        """True if the scan has a result that is still pending or processing."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT EXISTS (
                    SELECT 1 FROM referral_ocr_results
                    WHERE referral_scan_id = %s
                      AND processing_status IN ('pending', 'processing')
                )
                """,
                (scan_id,),
            )
            row = cur.fetchone()
        return bool(row and row[0])

    def mark_completed(
        self,
        ocr_result_id: UUID,
        *,
        raw_text: str,
        confidence_score: float,
        document_type: DocumentType,
        extracted_data: dict[str, Any],
        matched_patient_id: UUID | None = None,
        match_confidence: float | None = None,
        conn: psycopg.Connection[Any] | None = None,
    ) -> bool:
        """Record a finished run. False if the result was not in processing."""
        with use_connection(conn) as active:
            with active.cursor() as cur:
                cur.execute(
                    """
                    UPDATE referral_ocr_results
                    SET raw_text = %s,
                        confidence_score = %s,
                        document_type = %s,
                        extracted_data = %s,
                        matched_patient_id = %s,
                        match_confidence = %s,
                        processing_status = 'completed',
                        error_message = NULL,
                        processed_at = NOW(),
                        updated_at = NOW()
                    WHERE id = %s AND processing_status = 'processing'
                    """,
                    (
                        raw_text,
                        confidence_score,
                        document_type.value,
                        Jsonb(extracted_data),
                        matched_patient_id,
                        match_confidence,
                        ocr_result_id,
                    ),
                )
                return cur.rowcount == 1

    def mark_failed(self, ocr_result_id: UUID, error: str) -> bool:
        """Record a failed run and clear any partial output."""
        with use_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE referral_ocr_results
                    SET processing_status = 'failed',
                        error_message = %s,
                        raw_text = NULL,
                        confidence_score = NULL,
                        document_type = NULL,
                        extracted_data = NULL,
                        matched_patient_id = NULL,
                        match_confidence = NULL,
                        processed_at = NOW(),
                        updated_at = NOW()
                    WHERE id = %s AND processing_status IN ('pending', 'processing')
                    """,
                    (error, ocr_result_id),
                )
                return cur.rowcount == 1

    def lock_pending(self, conn: psycopg.Connection[Any], ocr_result_id: UUID) -> OcrResultRecord:
        """Row-lock a result for the rest of the caller's transaction.

        Raises:
            NotFoundError: if the result does not exist.
            AlreadyResolvedError: if the result is no longer pending review.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                "SELECT * FROM referral_ocr_results WHERE id = %s FOR UPDATE",
                (ocr_result_id,),
            )
            row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"OCR result {ocr_result_id} not found")
        record = self._to_record(row)
        if record.resolution_status is not ResolutionStatus.PENDING:
            raise AlreadyResolvedError(
                f"OCR result {ocr_result_id} already resolved as "
                f"{record.resolution_status.value}"
            )
        return record

    def resolve(
        self,
        ocr_result_id: UUID,
        status: ResolutionStatus,
        resolved_by: UUID,
        patient_id: UUID | None = None,
        conn: psycopg.Connection[Any] | None = None,
    ) -> OcrResultRecord:
        """Move a result out of pending review.

        Raises:
            NotFoundError: if the result does not exist.
            AlreadyResolvedError: if another resolution already won.
        """
        if status is ResolutionStatus.PENDING:
            raise ValueError("Cannot resolve an OCR result back to pending")

        with use_connection(conn) as active:
            with active.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    UPDATE referral_ocr_results
                    SET resolution_status = %s,
                        resolved_patient_id = %s,
                        resolved_by = %s,
                        resolved_at = NOW(),
                        updated_at = NOW()
                    WHERE id = %s AND resolution_status = 'pending'
                    RETURNING *
                    """,
                    (status.value, patient_id, resolved_by, ocr_result_id),
                )
                row = cur.fetchone()
                if row is not None:
                    return self._to_record(row)

                cur.execute(
                    "SELECT resolution_status FROM referral_ocr_results WHERE id = %s",
                    (ocr_result_id,),
                )
                existing = cur.fetchone()

        if existing is None:
            raise NotFoundError(f"OCR result {ocr_result_id} not found")
        raise AlreadyResolvedError(
            f"OCR result {ocr_result_id} already resolved as {existing['resolution_status']}"
        )

    @staticmethod
    def _to_record(row: dict[str, Any]) -> OcrResultRecord:
        confidence = row.get("confidence_score")
        document_type = row.get("document_type")
        match_confidence = row.get("match_confidence")
        return OcrResultRecord(
            id=row["id"],
            referral_scan_id=row["referral_scan_id"],
            processing_status=ProcessingStatus(row["processing_status"]),
            resolution_status=ResolutionStatus(row["resolution_status"]),
            raw_text=row.get("raw_text"),
            confidence_score=float(confidence) if isinstance(confidence, (Decimal, float, int)) else None,
            document_type=DocumentType(document_type) if document_type else None,
            extracted_data=row.get("extracted_data"),
            matched_patient_id=row.get("matched_patient_id"),
            match_confidence=(
                float(match_confidence) if isinstance(match_confidence, (Decimal, float, int)) else None
            ),
            error_message=row.get("error_message"),
            processed_at=row.get("processed_at"),
            resolved_patient_id=row.get("resolved_patient_id"),
            resolved_by=row.get("resolved_by"),
            resolved_at=row.get("resolved_at"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )
