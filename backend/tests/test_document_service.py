"""
Unit tests for document parsing, chunking, ingestion and removal.
"""
import os

import pytest
from docx import Document as WordDocument
from django.core.files.uploadedfile import SimpleUploadedFile
from langchain_core.documents import Document
from rest_framework.exceptions import NotFound

from apps.documents.parsers import PARSER_MAP, parse_docx, parse_pdf, parse_text
from apps.documents.services import document_service
from apps.documents.services.document_service import DocumentService, DocumentServiceError
from apps.documents.services.text_splitter import DocumentSplitter

from .fakes import make_pdf


@pytest.fixture
def service(vector_store, fake_db):
    return DocumentService(vector_store=vector_store, client=fake_db, splitter=DocumentSplitter(100, 20))


@pytest.fixture
def text_file(tmp_path):
    path = tmp_path / "coping.txt"
    path.write_text("Grounding exercises help with panic. " * 20, encoding="utf-8")
    return path


@pytest.mark.unit
class TestParsers:

    def test_parser_map_covers_upload_types(self):
        assert set(PARSER_MAP) == {'.pdf', '.docx', '.txt', '.md', '.html'}

    def test_text_parser_reads_markdown(self, tmp_path):
        path = tmp_path / "notes.md"
        path.write_text("# Sleep\n\nKeep a regular bedtime.", encoding="utf-8")

        result = parse_text(str(path))

        assert result["success"] is True
        assert "regular bedtime" in result["documents"][0].page_content

    def test_blank_text_yields_no_documents(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("   \n", encoding="utf-8")

        assert parse_text(str(path))["documents"] == []

    def test_docx_parser_reads_paragraphs_and_tables(self, tmp_path):
        path = tmp_path / "plan.docx"
        doc = WordDocument()
        doc.add_paragraph("Daily wellbeing plan")
        table = doc.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "Morning"
        table.rows[0].cells[1].text = "Walk outside"
        doc.save(str(path))

        result = parse_docx(str(path))

        content = result["documents"][0].page_content
        assert "Daily wellbeing plan" in content
        assert "Morning | Walk outside" in content

    def test_pdf_parser_returns_a_document_per_page(self, tmp_path):
        path = tmp_path / "sleep.pdf"
        path.write_bytes(make_pdf("Sleep hygiene basics"))

        result = parse_pdf(str(path))

        assert result["success"] is True
        assert len(result["documents"]) == 1
        assert "Sleep hygiene" in result["documents"][0].page_content
        assert result["documents"][0].metadata["page"] == 1

    def test_corrupt_pdf_reports_failure(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"not really a pdf")

        result = parse_pdf(str(path))

        assert result["success"] is False
        assert result["documents"] == []

    def test_parser_rejects_foreign_extension(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")

        assert parse_pdf(str(path))["error"] == "Unsupported file type: .txt"

    def test_splitter_keeps_page_metadata(self):
        pages = [Document(page_content="word " * 100, metadata={"title": "T"})]

        chunks = DocumentSplitter(chunk_size=100, chunk_overlap=10).split_documents(pages)

        assert len(chunks) > 1
        assert all(chunk.metadata["title"] == "T" for chunk in chunks)


@pytest.mark.unit
class TestProcessFile:

    def test_ingest_stores_metadata_and_stamped_chunks(self, service, fake_db, text_file):
        result = service.process_file(str(text_file), "coping.txt", {"title": "Coping", "category": "anxiety"})

        assert result["success"] is True
        document_id = result["document_id"]
        metadata_rows = fake_db.rows('document_metadata')
        assert len(metadata_rows) == 1
        assert metadata_rows[0]['file_type'] == 'txt'
        assert metadata_rows[0]['chunk_count'] == result["chunk_count"]

        chunks = fake_db.rows('documents')
        assert len(chunks) == result["chunk_count"] > 1
        for chunk in chunks:
            assert chunk['metadata']['documentId'] == document_id
            assert chunk['metadata']['title'] == "Coping"
            assert chunk['metadata']['category'] == "anxiety"
            assert chunk['metadata']['source'] == "coping.txt"
        assert len({chunk['metadata']['uploadedAt'] for chunk in chunks}) == 1

    def test_category_defaults_to_general(self, service, fake_db, text_file):
        service.process_file(str(text_file), "coping.txt", {"title": "Coping"})
        assert fake_db.rows('document_metadata')[0]['category'] == 'general'

    def test_unsupported_format(self, service, fake_db, tmp_path):
        path = tmp_path / "sheet.xlsx"
        path.write_bytes(b"binary")

        result = service.process_file(str(path), "sheet.xlsx", {"title": "Sheet"})

        assert result == {"success": False, "message": "Unsupported file format: .xlsx"}
        assert fake_db.rows('document_metadata') == []

    def test_no_extractable_text(self, service, fake_db, tmp_path):
        path = tmp_path / "blank.txt"
        path.write_text("", encoding="utf-8")

        result = service.process_file(str(path), "blank.txt", {"title": "Blank"})

        assert result["success"] is False
        assert result["message"] == "No text could be extracted from blank.txt"
        assert fake_db.rows('documents') == []

    def test_store_failure_raises(self, service, fake_db, text_file):
        fake_db.fail('document_metadata', 'insert')

        with pytest.raises(DocumentServiceError):
            service.process_file(str(text_file), "coping.txt", {"title": "Coping"})


@pytest.mark.unit
class TestProcessUpload:

    def test_temporary_copy_is_removed(self, service, monkeypatch):
        seen = {}
        original = service.process_file

        def spy(file_path, file_name, metadata):
            seen['path'] = file_path
            assert os.path.exists(file_path)
            return original(file_path, file_name, metadata)

        monkeypatch.setattr(service, 'process_file', spy)
        upload = SimpleUploadedFile("tips.txt", b"Take a short walk every day. " * 10)

        result = service.process_document(upload, {"title": "Tips"})

        assert result["success"] is True
        assert not os.path.exists(seen['path'])

    def test_temporary_copy_is_removed_on_failure(self, service, fake_db, monkeypatch):
        seen = {}
        original = service.process_file

        def spy(file_path, file_name, metadata):
            seen['path'] = file_path
            return original(file_path, file_name, metadata)

        monkeypatch.setattr(service, 'process_file', spy)
        fake_db.fail('document_metadata', 'insert')
        upload = SimpleUploadedFile("tips.txt", b"Take a short walk every day.")

        with pytest.raises(DocumentServiceError):
            service.process_document(upload, {"title": "Tips"})

        assert not os.path.exists(seen['path'])

    def test_temporary_copy_is_removed_when_upload_read_fails(self, service, fake_db, monkeypatch):
        created = []
        real_named_temporary_file = document_service.tempfile.NamedTemporaryFile

        def recording_named_temporary_file(*args, **kwargs):
            tmp_file = real_named_temporary_file(*args, **kwargs)
            created.append(tmp_file.name)
            return tmp_file

        monkeypatch.setattr(document_service.tempfile, 'NamedTemporaryFile', recording_named_temporary_file)

        class BrokenUpload:
            name = "tips.txt"

            def chunks(self):
                yield b"Take a short walk every day."
                raise OSError("connection reset while reading upload")

        with pytest.raises(OSError, match="connection reset"):
            service.process_document(BrokenUpload(), {"title": "Tips"})

        assert len(created) == 1
        assert not os.path.exists(created[0])
        assert fake_db.rows('document_metadata') == []


@pytest.mark.unit
class TestCatalogue:

    def test_delete_removes_chunks_and_metadata(self, service, fake_db, text_file):
        kept = service.process_file(str(text_file), "kept.txt", {"title": "Kept"})
        removed = service.process_file(str(text_file), "gone.txt", {"title": "Gone"})

        result = service.delete_document(removed["document_id"])

        assert result == {"success": True, "message": "Document successfully deleted"}
        assert [row['id'] for row in fake_db.rows('document_metadata')] == [kept["document_id"]]
        assert {row['metadata']['documentId'] for row in fake_db.rows('documents')} == {kept["document_id"]}

    def test_delete_unknown_document(self, service):
        with pytest.raises(NotFound):
            service.delete_document('missing')

    def test_delete_failure_is_reported(self, service, fake_db, text_file):
        stored = service.process_file(str(text_file), "coping.txt", {"title": "Coping"})
        fake_db.fail('documents', 'delete', RuntimeError("connection reset"))

        result = service.delete_document(stored["document_id"])

        assert result["success"] is False
        assert result["message"] == "Error deleting document: connection reset"

    def test_categories_are_distinct_and_sorted(self, service, text_file):
        service.process_file(str(text_file), "a.txt", {"title": "A", "category": "sleep"})
        service.process_file(str(text_file), "b.txt", {"title": "B", "category": "anxiety"})
        service.process_file(str(text_file), "c.txt", {"title": "C", "category": "sleep"})

        assert service.get_categories() == ["anxiety", "sleep"]
        assert sorted(d["title"] for d in service.get_documents_by_category("sleep")) == ["A", "C"]

    def test_stats(self, service, fake_db):
        fake_db.rows('document_metadata').extend([
            {'id': '1', 'chunk_count': 4, 'file_type': 'pdf', 'category': 'sleep'},
            {'id': '2', 'chunk_count': 6, 'file_type': 'txt', 'category': 'sleep'},
            {'id': '3', 'chunk_count': None, 'file_type': 'pdf', 'category': None},
        ])

        stats = service.get_document_stats()

        assert stats == {
            "totalDocuments": 3,
            "totalChunks": 10,
            "fileTypes": {"pdf": 2, "txt": 1},
            "categories": {"sleep": 2, "general": 1},
        }
