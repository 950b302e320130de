import logging
from typing import List, Optional

from langchain_core.documents import Document
from langchain_text_splitters import RecursiveCharacterTextSplitter

from settings import settings

logger = logging.getLogger(__name__)


class DocumentSplitter:
    """Splits parsed pages into overlapping chunks for embedding."""

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
        separators: Optional[List[str]] = None
    ):
        """
        Initialize the document splitter.

        Args:
            chunk_size: Maximum size of each chunk, defaults to CHUNK_SIZE
            chunk_overlap: Characters shared between neighbouring chunks, defaults to CHUNK_OVERLAP
            separators: Custom separators for splitting (optional)
        """
        self.chunk_size = chunk_size or settings.chunk_size
        self.chunk_overlap = settings.chunk_overlap if chunk_overlap is None else chunk_overlap
        self.separators = separators or ["\n\n", "\n", ". ", " ", ""]

        self.splitter = RecursiveCharacterTextSplitter(
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            separators=self.separators,
            length_function=len
        )

    def split_documents(self, documents: List[Document]) -> List[Document]:
        """Split pages into chunks; each chunk keeps its page's metadata."""
        chunks = self.splitter.split_documents(documents)
        logger.info(f"Split {len(documents)} pages into {len(chunks)} chunks")
        return chunks
