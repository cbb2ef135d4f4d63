from bs4 import BeautifulSoup

TEXT_MIME_TYPES = {"text/plain", "text/markdown", "text/x-markdown", "text/html"}
TEXT_EXTENSIONS = (".txt", ".md", ".markdown", ".html", ".htm")


class TextExtractor:
    """Plain text, markdown and HTML."""

    def supports(self, mime_hint: str) -> bool:
        hint = mime_hint.lower()
        return hint in TEXT_MIME_TYPES or hint.endswith(TEXT_EXTENSIONS)

    def extract(self, data: bytes, mime_hint: str) -> str:
        text = data.decode("utf-8-sig")
        hint = mime_hint.lower()
        if hint == "text/html" or hint.endswith((".html", ".htm")):
            soup = BeautifulSoup(text, "html.parser")
            for tag in soup(["script", "style"]):
                tag.decompose()
            return soup.get_text("\n")
        return text
