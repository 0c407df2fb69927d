from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any
from uuid import UUID

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from referral_ocr.database.connection import get_connection, use_connection
from referral_ocr.database.models import FieldMappingRecord, FieldName, MappingStatus
from referral_ocr.review.exceptions import InvalidStateError, NotFoundError


class FieldMappingRepository:
    """Database operations for the ocr_field_mappings table."""

    def insert_many(
        self,
        ocr_result_id: UUID,
        proposals: Iterable[tuple[FieldName, str, float | None]],
        conn: psycopg.Connection[Any] | None = None,
    ) -> list[FieldMappingRecord]:
        """Insert one pending mapping per (field, value, confidence) proposal."""
        records: list[FieldMappingRecord] = []
        with use_connection(conn) as active:
            with active.cursor(row_factory=dict_row) as cur:
                for field_name, value, confidence_score in proposals:
                    cur.execute(
                        """
                        INSERT INTO ocr_field_mappings
                            (ocr_result_id, field_name, extracted_value, confidence_score)
                        VALUES (%s, %s, %s, %s)
                        RETURNING *
                        """,
                        (ocr_result_id, field_name.value, value, confidence_score),
                    )
                    row = cur.fetchone()
                    if row is None:
                        raise RuntimeError("INSERT INTO ocr_field_mappings returned no row")
                    records.append(self._to_record(row))
        return records

    def list_for_result(self, ocr_result_id: UUID) -> list[FieldMappingRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT * FROM ocr_field_mappings
                    WHERE ocr_result_id = %s
                    ORDER BY field_name
                    """,
                    (ocr_result_id,),
                )
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    def transition(
        self,
        mapping_id: UUID,
        target: MappingStatus,
        actor_id: UUID,
    ) -> FieldMappingRecord:
        """Move a mapping from pending to applied or rejected.

        Only applied mappings carry applied_at / applied_by.

        Raises:
            NotFoundError: if the mapping does not exist.
            InvalidStateError: if the mapping is no longer pending.
        """
        if target is MappingStatus.PENDING:
            raise ValueError("Cannot transition a field mapping back to pending")

        applied = target is MappingStatus.APPLIED
        with use_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    UPDATE ocr_field_mappings
                    SET status = %(status)s,
                        applied_at = CASE WHEN %(applied)s THEN NOW() END,
                        applied_by = %(applied_by)s
                    WHERE id = %(id)s AND status = 'pending'
                    RETURNING *
                    """,
                    {
                        "status": target.value,
                        "applied": applied,
                        "applied_by": actor_id if applied else None,
                        "id": mapping_id,
                    },
                )
                row = cur.fetchone()
                if row is not None:
                    return self._to_record(row)

                cur.execute(
                    "SELECT status FROM ocr_field_mappings WHERE id = %s",
                    (mapping_id,),
                )
                existing = cur.fetchone()

        if existing is None:
            raise NotFoundError(f"Field mapping {mapping_id} not found")
        raise InvalidStateError(
            f"Field mapping {mapping_id} is {existing['status']}, expected pending"
        )

    def attach_patient(
        self,
        ocr_result_id: UUID,
        patient_id: UUID,
        original_values: Mapping[FieldName, str | None],
        conn: psycopg.Connection[Any] | None = None,
    ) -> int:
        """Link every mapping of a resolved result to its patient.

        original_values holds the patient's current value per field; fields
        missing from it keep a NULL original_value. Returns the rows updated.
        """
        originals = {name.value: value for name, value in original_values.items()}
        with use_connection(conn) as active:
            with active.cursor() as cur:
                cur.execute(
                    """
                    UPDATE ocr_field_mappings
                    SET patient_id = %s,
                        original_value = %s::jsonb ->> field_name
                    WHERE ocr_result_id = %s
                    """,
                    (patient_id, Jsonb(originals), ocr_result_id),
                )
                return cur.rowcount

    @staticmethod
    def _to_record(row: dict[str, Any]) -> FieldMappingRecord:
        confidence = row.get("confidence_score")
        return FieldMappingRecord(
            id=row["id"],
            ocr_result_id=row["ocr_result_id"],
            field_name=FieldName(row["field_name"]),
            extracted_value=row["extracted_value"],
            status=MappingStatus(row["status"]),
            patient_id=row.get("patient_id"),
            original_value=row.get("original_value"),
            confidence_score=float(confidence) if isinstance(confidence, (Decimal, float, int)) else None,
            applied_at=row.get("applied_at"),
            applied_by=row.get("applied_by"),
            created_at=row.get("created_at"),
        )
