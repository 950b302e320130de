"""Management command to verify the Gemini models answer with this configuration."""
from django.core.management.base import BaseCommand

from core.clients.gemini_client import ping_chat_model, check_embeddings
from settings import settings


class Command(BaseCommand):
    help = "Verify Gemini embeddings match the vector column and the chat model responds"

    def handle(self, *args, **options):
        if not settings.google_api_key:
            self.stdout.write(self.style.ERROR("GOOGLE_API_KEY is not set"))
            return

        self.stdout.write(f"Embedding model: {settings.embedding_model}")
        try:
            dimension, fits = check_embeddings()
        except Exception as e:
            self.stdout.write(self.style.ERROR(f"  Embedding request failed: {str(e)}"))
            return

        if fits:
            self.stdout.write(self.style.SUCCESS(f"  {dimension}-dim vectors, matches EMBEDDING_DIMENSIONS"))
        else:
            self.stdout.write(self.style.WARNING(
                f"  {dimension}-dim vectors, but EMBEDDING_DIMENSIONS is {settings.embedding_dimensions}"
            ))

        self.stdout.write(f"\nChat model: {settings.chat_model}")
        try:
            reply = ping_chat_model()
        except Exception as e:
            self.stdout.write(self.style.ERROR(f"  Chat request failed: {str(e)}"))
            return

        self.stdout.write(f"  Reply: {reply[:100]}")
        self.stdout.write(self.style.SUCCESS("\nGemini is reachable"))
