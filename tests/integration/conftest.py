import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from referral_ocr.config.settings import Settings
from referral_ocr.database.connection import close_pool, get_connection, init_pool
from referral_ocr.database.models import DocumentType, OcrResultRecord, ReferralScanRecord
from referral_ocr.database.repositories.ocr_result_repository import OcrResultRepository
from referral_ocr.database.repositories.referral_scan_repository import ReferralScanRepository

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "referral_ocr" / "database" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "referrals_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[uuid.UUID], None, None]:
    """Scan ids to delete after the test; results and mappings cascade."""
    cleanup: list[uuid.UUID] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for scan_id in cleanup:
                cur.execute("DELETE FROM referral_scans WHERE id = %s", (scan_id,))
        conn.commit()


@pytest.fixture
def files_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def seed_scan(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[uuid.UUID],
) -> ReferralScanRecord:
    scan = ReferralScanRepository().insert(
        db_conn,
        uploaded_by=uuid.uuid4(),
        filename=f"{uuid.uuid4()}.pdf",
        original_name="referral.pdf",
        mime_type="application/pdf",
        file_size=1024,
    )
    db_conn.commit()
    integration_cleanup.append(scan.id)
    return scan


@pytest.fixture
def seed_result(
    db_conn: psycopg.Connection[Any],
    seed_scan: ReferralScanRecord,
) -> OcrResultRecord:
    result = OcrResultRepository().insert_pending(db_conn, seed_scan.id)
    db_conn.commit()
    return result


@pytest.fixture
def completed_result(seed_result: OcrResultRecord) -> OcrResultRecord:
    repo = OcrResultRepository()
    claimed = repo.claim(seed_result.id)
    assert claimed is not None
    assert repo.mark_completed(
        seed_result.id,
        raw_text="Dear Dr. Smith",
        confidence_score=0.9,
        document_type=DocumentType.REFERRAL,
        extracted_data={"patient": {}},
    )
    record = repo.find_by_id(seed_result.id)
    assert record is not None
    return record


@pytest.fixture
def scan_pdf_on_disk(
    seed_scan: ReferralScanRecord,
    files_root: Path,
    multi_page_pdf_bytes: bytes,
) -> Path:
    path = files_root / seed_scan.filename
    path.write_bytes(multi_page_pdf_bytes)
    return path
