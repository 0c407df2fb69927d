import uuid
from pathlib import Path

import pytest

from referral_ocr.database.models import ReferralScanRecord
from referral_ocr.processor.exceptions import ScanFileMissingError
from referral_ocr.processor.file_loader import FileLoader, scan_file_path


def _make_scan(filename: str) -> ReferralScanRecord:
    return ReferralScanRecord(
        id=uuid.uuid4(),
        uploaded_by=uuid.uuid4(),
        filename=filename,
        original_name="referral.pdf",
        mime_type="application/pdf",
        file_size=10,
    )


class TestScanFilePath:
    def test_joins_root_and_filename(self) -> None:
        assert scan_file_path(Path("/data"), "2024/a.pdf") == Path("/data/2024/a.pdf")


class TestFileLoader:
    def test_resolves_existing_file(self, tmp_path: Path) -> None:
        (tmp_path / "2024").mkdir()
        stored = tmp_path / "2024" / "a.pdf"
        stored.write_bytes(b"%PDF")

        path = FileLoader(files_root=tmp_path).resolve(_make_scan("2024/a.pdf"))

        assert path == stored

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ScanFileMissingError, match="File not found"):
            FileLoader(files_root=tmp_path).resolve(_make_scan("missing.pdf"))

    def test_path_escape_rejected(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        root.mkdir()
        (tmp_path / "secret.pdf").write_bytes(b"%PDF")

        with pytest.raises(ScanFileMissingError, match="escapes"):
            FileLoader(files_root=root).resolve(_make_scan("../secret.pdf"))

    def test_default_root(self) -> None:
        assert FileLoader.FILES_ROOT == Path("/app/uploads/referrals")
