"""Management command to verify Supabase connection."""
from django.core.management.base import BaseCommand

from core.clients.supabase_client import get_admin_client, health_check
from settings import settings


class Command(BaseCommand):
    help = "Verify Supabase connection and the similarity search RPC"

    def handle(self, *args, **options):
        self.stdout.write("Checking Supabase connection...\n")

        if not health_check():
            self.stdout.write(self.style.ERROR("Supabase connection failed!"))
            self.stdout.write("\nMake sure you have:")
            self.stdout.write("  1. SUPABASE_URL set in .env")
            self.stdout.write("  2. SUPABASE_SERVICE_ROLE_KEY set in .env")
            self.stdout.write("  3. Created the document_metadata and vector tables")
            return

        self.stdout.write(self.style.SUCCESS("Supabase connection successful!"))

        self.stdout.write(f"\nTesting {settings.vector_query_name} RPC...")
        try:
            get_admin_client().rpc(
                settings.vector_query_name,
                {
                    'query_embedding': [0.0] * settings.embedding_dimensions,
                    'match_count': 1,
                    'filter': {},
                }
            ).execute()
            self.stdout.write(self.style.SUCCESS(f"  {settings.vector_query_name} RPC works!"))
        except Exception as e:
            self.stdout.write(self.style.WARNING(f"  {settings.vector_query_name} RPC failed: {str(e)}"))
