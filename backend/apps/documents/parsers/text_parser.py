from pathlib import Path
from typing import Dict, List, Tuple

from langchain_core.documents import Document

from .base import BaseParser


class TextParser(BaseParser):
    """Plain text, markdown and HTML are indexed as-is."""

    SUPPORTED_EXTENSIONS = ['.txt', '.md', '.html']

    def extract(self, path: Path) -> Tuple[List[Document], Dict]:
        content = path.read_text(encoding="utf-8", errors="replace")
        documents = [Document(page_content=content, metadata={})] if content.strip() else []
        return documents, {"file_type": path.suffix.lower().lstrip('.'), "characters": len(content)}


def parse_text(file_path: str) -> Dict:
    return TextParser().parse(file_path)
