import logging

from .docx_extractor import DocxExtractor
from .pdf_extractor import PdfExtractor
from .text_extractor import TextExtractor

logger = logging.getLogger(__name__)


class CompositeExtractor:

    def __init__(self):
        self._extractors = [
            PdfExtractor(),
            DocxExtractor(),
            TextExtractor(),
        ]

    def supports(self, mime_hint: str) -> bool:
        return any(extractor.supports(mime_hint) for extractor in self._extractors)

    def extract(self, data: bytes, mime_hint: str) -> str:
        for extractor in self._extractors:
            if extractor.supports(mime_hint):
                logger.debug(f"Extracting {mime_hint} with {type(extractor).__name__}")
                return extractor.extract(data, mime_hint)
        raise ValueError(f"Unsupported file type: {mime_hint}")
