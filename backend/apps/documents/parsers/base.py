import logging
from pathlib import Path
from typing import Dict, List, Tuple

from langchain_core.documents import Document

logger = logging.getLogger(__name__)


def parse_failure(error: str) -> Dict:
    return {"success": False, "error": error, "documents": [], "metadata": {}}


class BaseParser:
    """
    Shared parse flow for knowledge-base uploads.

    Subclasses implement ``extract`` and return the pages that carry text
    plus file-level metadata. Pages come back without upload metadata;
    the document service stamps title, category and source on them.
    """

    SUPPORTED_EXTENSIONS: List[str] = []

    def parse(self, file_path: str) -> Dict:
        path = Path(file_path)
        if path.suffix.lower() not in self.SUPPORTED_EXTENSIONS:
            return parse_failure(f"Unsupported file type: {path.suffix}")

        try:
            documents, metadata = self.extract(path)
        except Exception as e:
            logger.error(f"Error parsing {path.name}: {str(e)}")
            return parse_failure(str(e))

        logger.info(f"Parsed {path.name}: {len(documents)} text sections")
        return {"success": True, "documents": documents, "metadata": metadata, "error": None}

    def extract(self, path: Path) -> Tuple[List[Document], Dict]:
        raise NotImplementedError
