"""Text extractor implementations."""
from .pdf_extractor import PdfExtractor
from .docx_extractor import DocxExtractor
from .text_extractor import TextExtractor
from .composite_extractor import CompositeExtractor

__all__ = ["PdfExtractor", "DocxExtractor", "TextExtractor", "CompositeExtractor"]
