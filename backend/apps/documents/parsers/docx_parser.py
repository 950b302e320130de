from pathlib import Path
from typing import Dict, List, Tuple

from docx import Document as WordDocument
from langchain_core.documents import Document

from .base import BaseParser


class DOCXParser(BaseParser):
    """Word documents become a single Document: paragraphs, then table rows."""

    SUPPORTED_EXTENSIONS = ['.docx']

    def extract(self, path: Path) -> Tuple[List[Document], Dict]:
        word = WordDocument(str(path))
        blocks = [paragraph.text for paragraph in word.paragraphs if paragraph.text.strip()]

        # Table rows are flattened to "cell | cell" lines
        for table in word.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    blocks.append(" | ".join(cells))

        content = "\n\n".join(blocks)
        documents = [Document(page_content=content, metadata={})] if content.strip() else []
        return documents, {
            "file_type": "docx",
            "paragraph_count": len(word.paragraphs),
            "table_count": len(word.tables),
        }


def parse_docx(file_path: str) -> Dict:
    return DOCXParser().parse(file_path)
