from pathlib import Path
from typing import Dict, List, Tuple

from langchain_core.documents import Document
from pypdf import PdfReader

from .base import BaseParser


class PDFParser(BaseParser):
    """One Document per PDF page that yields text; scanned pages are skipped."""

    SUPPORTED_EXTENSIONS = ['.pdf']

    def extract(self, path: Path) -> Tuple[List[Document], Dict]:
        reader = PdfReader(str(path))
        pages = []
        for number, page in enumerate(reader.pages, 1):
            text = page.extract_text() or ''
            if text.strip():
                pages.append(Document(page_content=text, metadata={"page": number}))
        return pages, {"file_type": "pdf", "page_count": len(reader.pages)}


def parse_pdf(file_path: str) -> Dict:
    return PDFParser().parse(file_path)
