"""
Tests for the operational management commands.
"""
from io import StringIO
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from django.core.management import CommandError, call_command

from apps.authentication.services import AuthService
from apps.documents.management.commands import ingest_document
from apps.documents.services.document_service import DocumentService
from apps.documents.services.text_splitter import DocumentSplitter
from core.management.commands import sync_users
from settings import settings


def run(*args, **kwargs):
    out = StringIO()
    call_command(*args, stdout=out, **kwargs)
    return out.getvalue()


@pytest.mark.unit
def test_check_settings_reports_missing_keys_without_values(monkeypatch):
    monkeypatch.setattr(settings, 'google_api_key', 'AIza-very-secret')
    monkeypatch.setattr(settings, 'admin_secret_key', None)

    output = run('check_settings')

    assert "GOOGLE_API_KEY: configured" in output
    assert "ADMIN_SECRET_KEY: NOT SET" in output
    assert "AIza-very-secret" not in output


@pytest.mark.unit
class TestSyncUsers:

    @pytest.fixture
    def service(self, fake_db, monkeypatch):
        fake_db.auth.admin.list_users.return_value = [
            SimpleNamespace(id='u1', email='a@example.com', user_metadata={}, app_metadata={}),
            SimpleNamespace(id='u2', email='b@example.com', user_metadata={'is_admin': True}, app_metadata={}),
        ]
        service = AuthService(admin_client=fake_db, public_client=MagicMock())
        monkeypatch.setattr(sync_users, 'AuthService', lambda: service)
        return service

    def test_writes_roles(self, service, fake_db):
        output = run('sync_users')

        roles = {row['id']: row['role'] for row in fake_db.rows('users')}
        assert roles == {'u1': 'user', 'u2': 'admin'}
        assert "Synced 2 users (1 admins)" in output

    def test_syncs_every_page(self, service, fake_db):
        everyone = [
            SimpleNamespace(id=f'u{i}', email=f'user{i}@example.com', user_metadata={}, app_metadata={})
            for i in range(120)
        ]

        def list_users(page=1, per_page=50):
            return everyone[(page - 1) * per_page:page * per_page]

        fake_db.auth.admin.list_users.side_effect = list_users

        output = run('sync_users')

        assert len(fake_db.rows('users')) == 120
        assert "Found 120 users" in output
        assert "Synced 120 users (0 admins)" in output

    def test_dry_run_writes_nothing(self, service, fake_db):
        output = run('sync_users', '--dry-run')

        assert fake_db.rows('users') == []
        assert "b@example.com: admin" in output


@pytest.mark.unit
class TestIngestDocument:

    @pytest.fixture
    def service(self, vector_store, fake_db, monkeypatch):
        service = DocumentService(vector_store=vector_store, client=fake_db, splitter=DocumentSplitter(200, 20))
        monkeypatch.setattr(ingest_document, 'DocumentService', lambda: service)
        return service

    def test_ingests_file(self, service, fake_db, tmp_path):
        path = tmp_path / "breathing.md"
        path.write_text("Box breathing: in for four, hold for four, out for four.", encoding="utf-8")

        output = run('ingest_document', str(path), '--category', 'anxiety')

        assert "Successfully processed breathing.md" in output
        row = fake_db.rows('document_metadata')[0]
        assert row['title'] == 'breathing'
        assert row['category'] == 'anxiety'

    def test_missing_file(self, service, tmp_path):
        with pytest.raises(CommandError, match="File not found"):
            run('ingest_document', str(tmp_path / "nope.txt"))

    def test_unsupported_file(self, service, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("a,b", encoding="utf-8")

        with pytest.raises(CommandError, match="Unsupported file format"):
            run('ingest_document', str(path))
