import io
from typing import Any

import pytesseract
from PIL import Image

from referral_ocr.logging.logger import Log
from referral_ocr.recognition.engine import BaseRecognitionEngine
from referral_ocr.recognition.exceptions import RecognitionError
from referral_ocr.recognition.models import RecognizedPage


class TesseractEngine(BaseRecognitionEngine):
    """Tesseract backend driven through pytesseract."""

    def __init__(
        self,
        language: str = "eng",
        tesseract_cmd: str = "",
        config: str = "--oem 3 --psm 3",
    ) -> None:
        super().__init__()
        self._language = language
        self._tesseract_cmd = tesseract_cmd
        self._config = config

    def _start(self) -> None:
        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd
        version = pytesseract.get_tesseract_version()
        installed = set(pytesseract.get_languages(config=""))
        missing = [lang for lang in self._language.split("+") if lang not in installed]
        if missing:
            raise RecognitionError(
                f"Tesseract language data not installed: {', '.join(missing)}"
            )
        Log.info(f"Tesseract {version} ready (lang={self._language})")

    def _recognize(self, page_image: bytes) -> RecognizedPage:
        with Image.open(io.BytesIO(page_image)) as image:
            data = pytesseract.image_to_data(
                image,
                lang=self._language,
                config=self._config,
                output_type=pytesseract.Output.DICT,
            )
        return RecognizedPage(text=_layout_text(data), confidence=_mean_confidence(data))

    def _stop(self) -> None:
        Log.info("Tesseract engine released")


def _layout_text(data: dict[str, list[Any]]) -> str:
    """Rebuild page text from word boxes: one line per Tesseract line, blank line between blocks."""
    lines: list[str] = []
    current_key: tuple[int, int, int] | None = None
    current_block: int | None = None
    words: list[str] = []

    for i, word in enumerate(data.get("text", [])):
        word = str(word).strip()
        if not word:
            continue
        key = (int(data["block_num"][i]), int(data["par_num"][i]), int(data["line_num"][i]))
        if key != current_key:
            if words:
                lines.append(" ".join(words))
                words = []
            if current_block is not None and key[0] != current_block:
                lines.append("")
            current_key = key
            current_block = key[0]
        words.append(word)

    if words:
        lines.append(" ".join(words))
    return "\n".join(lines)


def _mean_confidence(data: dict[str, list[Any]]) -> float:
    scores = [
        float(conf)
        for conf, word in zip(data.get("conf", []), data.get("text", []))
        if str(word).strip() and float(conf) >= 0
    ]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)
