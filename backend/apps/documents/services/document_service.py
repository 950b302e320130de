"""
Document ingestion for the knowledge base.

Uploads are parsed into pages, split into overlapping chunks, registered in
``document_metadata`` and embedded into the vector table. Deleting a document
removes its chunks first and its metadata row second.
"""
import logging
import os
import tempfile
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from rest_framework.exceptions import NotFound

from core.clients.supabase_client import get_admin_client
from core.clients.vector_store import get_vector_store
from core.exceptions import ServiceError
from settings import settings

from ..parsers import PARSER_MAP
from .text_splitter import DocumentSplitter

logger = logging.getLogger(__name__)


class DocumentServiceError(ServiceError):
    default_detail = "Failed to process document"


class DocumentService:
    """Parses, chunks, stores and removes knowledge-base documents."""

    def __init__(self, vector_store=None, client=None, splitter: Optional[DocumentSplitter] = None):
        self.vector_store = vector_store if vector_store is not None else get_vector_store()
        self.client = client if client is not None else get_admin_client()
        self.splitter = splitter or DocumentSplitter()

    def process_document(self, uploaded_file, metadata: Dict) -> Dict:
        """Spool an uploaded file to disk and ingest it.

        The temporary copy is removed whatever the outcome.
        """
        suffix = Path(uploaded_file.name).suffix.lower()
        tmp_file = tempfile.NamedTemporaryFile(delete=False, suffix=suffix)
        tmp_path = tmp_file.name
        try:
            with tmp_file:
                for chunk in uploaded_file.chunks():
                    tmp_file.write(chunk)
            return self.process_file(tmp_path, uploaded_file.name, metadata)
        finally:
            try:
                os.unlink(tmp_path)
            except OSError as e:
                logger.warning(f"Could not remove temporary upload {tmp_path}: {str(e)}")

    def process_file(self, file_path: str, file_name: str, metadata: Dict) -> Dict:
        """
        Ingest a file that is already on disk.

        Args:
            file_path: Local path of the file to parse
            file_name: Original name, stored as the chunk ``source``
            metadata: ``title`` plus optional ``description`` and ``category``

        Returns:
            Dict with success, message and, on success, document_id and chunk_count
        """
        extension = Path(file_name).suffix.lower()
        parser_class = PARSER_MAP.get(extension)
        if parser_class is None:
            return {"success": False, "message": f"Unsupported file format: {extension}"}

        parsed = parser_class().parse(file_path)
        if not parsed["success"]:
            return {"success": False, "message": f"Error processing document: {parsed['error']}"}

        pages = parsed["documents"]
        if not pages:
            return {"success": False, "message": f"No text could be extracted from {file_name}"}

        title = metadata["title"]
        description = metadata.get("description") or ""
        category = metadata.get("category") or "general"

        uploaded_at = datetime.now(timezone.utc).isoformat()
        for page in pages:
            page.metadata.update({
                "title": title,
                "description": description,
                "category": category,
                "uploadedAt": uploaded_at,
                "source": file_name,
            })

        chunks = self.splitter.split_documents(pages)

        try:
            result = self.client.table('document_metadata').insert({
                'title': title,
                'description': description,
                'category': category,
                'file_name': file_name,
                'chunk_count': len(chunks),
                'file_type': extension.lstrip('.'),
            }).execute()
            document_id = result.data[0]['id']

            for chunk in chunks:
                chunk.metadata["documentId"] = document_id

            self.vector_store.add_documents(chunks)
        except Exception as e:
            logger.error(f"Error storing document {file_name}: {str(e)}", exc_info=True)
            raise DocumentServiceError(f"Error processing document: {str(e)}") from e

        logger.info(f"Stored document {document_id} ({file_name}) with {len(chunks)} chunks")

        return {
            "success": True,
            "message": f"Successfully processed {file_name} into {len(chunks)} chunks",
            "document_id": document_id,
            "chunk_count": len(chunks),
        }

    def delete_document(self, document_id: str) -> Dict:
        """Remove a document's chunks, then its metadata row.

        A failure part-way is reported once and not rolled back; calling
        again finishes the job.
        """
        existing = (
            self.client.table('document_metadata')
            .select('id')
            .eq('id', document_id)
            .limit(1)
            .execute()
        )
        if not existing.data:
            raise NotFound("Document not found")

        try:
            self.client.table(settings.vector_table_name).delete().filter(
                'metadata->>documentId', 'eq', document_id
            ).execute()
            self.client.table('document_metadata').delete().eq('id', document_id).execute()
        except Exception as e:
            logger.error(f"Error deleting document {document_id}: {str(e)}")
            return {"success": False, "message": f"Error deleting document: {str(e)}"}

        logger.info(f"Deleted document {document_id}")
        return {"success": True, "message": "Document successfully deleted"}

    def list_documents(self) -> List[Dict]:
        result = (
            self.client.table('document_metadata')
            .select('*')
            .order('uploaded_at', desc=True)
            .execute()
        )
        return result.data or []

    def get_documents_by_category(self, category: str) -> List[Dict]:
        result = (
            self.client.table('document_metadata')
            .select('*')
            .eq('category', category)
            .order('uploaded_at', desc=True)
            .execute()
        )
        return result.data or []

    def get_categories(self) -> List[str]:
        result = self.client.table('document_metadata').select('category').execute()
        return sorted({row['category'] for row in result.data or [] if row.get('category')})

    def get_document_stats(self) -> Dict:
        result = self.client.table('document_metadata').select('chunk_count, file_type, category').execute()
        rows = result.data or []
        return {
            "totalDocuments": len(rows),
            "totalChunks": sum(row.get('chunk_count') or 0 for row in rows),
            "fileTypes": dict(Counter(row.get('file_type') or 'unknown' for row in rows)),
            "categories": dict(Counter(row.get('category') or 'general' for row in rows)),
        }
