import io

from pypdf import PdfReader

PDF_MIME_TYPES = {"application/pdf"}


class PdfExtractor:

    def supports(self, mime_hint: str) -> bool:
        hint = mime_hint.lower()
        return hint in PDF_MIME_TYPES or hint.endswith(".pdf")

    def extract(self, data: bytes, mime_hint: str) -> str:
        reader = PdfReader(io.BytesIO(data))
        text_parts = []
        for page in reader.pages:
            text = page.extract_text()
            if text:
                text_parts.append(text.strip())
        return "\n\n".join(text_parts)
