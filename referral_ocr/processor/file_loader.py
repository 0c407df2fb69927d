from pathlib import Path

from referral_ocr.database.models import ReferralScanRecord
from referral_ocr.processor.exceptions import ScanFileMissingError


def scan_file_path(files_root: Path, filename: str) -> Path:
    """Build path to a stored scan: {files_root}/{filename}"""
    return files_root / filename


class FileLoader:
    """Resolves the filesystem path of a stored referral scan."""

    FILES_ROOT = Path("/app/uploads/referrals")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    def resolve(self, scan: ReferralScanRecord) -> Path:
        """Return the on-disk path of the scan.

        Raises:
            ScanFileMissingError: if the stored name escapes files_root or the
                file does not exist.
        """
        path = scan_file_path(self._files_root, scan.filename)
        root = self._files_root.resolve()
        if root not in path.resolve().parents:
            raise ScanFileMissingError(f"Stored filename escapes files root: {scan.filename}")
        if not path.is_file():
            raise ScanFileMissingError(f"File not found: {path}")
        return path
