import io

from docx import Document

DOCX_MIME_TYPES = {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}


class DocxExtractor:

    def supports(self, mime_hint: str) -> bool:
        hint = mime_hint.lower()
        return hint in DOCX_MIME_TYPES or hint.endswith(".docx")

    def extract(self, data: bytes, mime_hint: str) -> str:
        doc = Document(io.BytesIO(data))
        paragraphs = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
        return "\n\n".join(paragraphs)
