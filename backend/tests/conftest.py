import pytest
from rest_framework.test import APIClient

from core.authentication import SupabaseUser

from .fakes import FakeSupabase, FakeVectorStore, RecordingChatModel


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture(autouse=True)
def admin_client(fake_db, monkeypatch):
    """Route every admin-client lookup to the in-memory database."""
    import core.clients.supabase_client as supabase_client

    monkeypatch.setattr(supabase_client, 'get_admin_client', lambda: fake_db)
    return fake_db


@pytest.fixture
def vector_store(fake_db):
    return FakeVectorStore(fake_db)


@pytest.fixture
def chat_model():
    return RecordingChatModel("anxiety support", "Breathing slowly can help calm anxiety.")


@pytest.fixture
def user():
    return SupabaseUser(id='user-1', email='user@example.com')


@pytest.fixture
def other_user():
    return SupabaseUser(id='user-2', email='other@example.com')


@pytest.fixture
def admin_user():
    return SupabaseUser(id='admin-1', email='admin@example.com', app_metadata={'role': 'admin'})


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def admin_api_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client
