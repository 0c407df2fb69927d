from typing import Any
from uuid import UUID

import psycopg
from psycopg.rows import dict_row

from referral_ocr.database.connection import get_connection
from referral_ocr.database.models import ReferralScanRecord
from referral_ocr.review.exceptions import NotFoundError


class ReferralScanRepository:
    """Database operations for the referral_scans table."""

    def insert(
        self,
        conn: psycopg.Connection[Any],
        *,
        uploaded_by: UUID,
        filename: str,
        original_name: str,
        mime_type: str,
        file_size: int,
    ) -> ReferralScanRecord:
        """Insert a scan row on the caller's connection. Caller commits."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                INSERT INTO referral_scans
                    (uploaded_by, filename, original_name, mime_type, file_size)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING *
                """,
                (uploaded_by, filename, original_name, mime_type, file_size),
            )
            row = cur.fetchone()
        if row is None:
            raise RuntimeError("INSERT INTO referral_scans returned no row")
        return self._to_record(row)

    def find_by_id(self, scan_id: UUID) -> ReferralScanRecord:
        """Find a referral scan by ID.

        Raises:
            NotFoundError: if no scan with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SELECT * FROM referral_scans WHERE id = %s", (scan_id,))
                row = cur.fetchone()

        if row is None:
            raise NotFoundError(f"Referral scan {scan_id} not found")
        return self._to_record(row)

    def lock(self, conn: psycopg.Connection[Any], scan_id: UUID) -> ReferralScanRecord:
        """Lock the scan row on the caller's transaction until it ends.

        Raises:
            NotFoundError: if no scan with this ID exists.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute("SELECT * FROM referral_scans WHERE id = %s FOR UPDATE", (scan_id,))
            row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"Referral scan {scan_id} not found")
        return self._to_record(row)

    @staticmethod
    def _to_record(row: dict[str, Any]) -> ReferralScanRecord:
        return ReferralScanRecord(
            id=row["id"],
            uploaded_by=row["uploaded_by"],
            filename=row["filename"],
            original_name=row["original_name"],
            mime_type=row["mime_type"],
            file_size=row["file_size"],
            created_at=row.get("created_at"),
        )
