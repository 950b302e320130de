"""Management command to verify Pydantic settings are working."""
from django.core.management.base import BaseCommand

from settings import settings

SECRET_FIELDS = [
    ('SUPABASE_URL', 'supabase_url'),
    ('SUPABASE_ANON_KEY', 'supabase_anon_key'),
    ('SUPABASE_SERVICE_ROLE_KEY', 'supabase_service_role_key'),
    ('GOOGLE_API_KEY', 'google_api_key'),
    ('META_APP_ID', 'meta_app_id'),
    ('META_APP_SECRET', 'meta_app_secret'),
    ('META_WEBHOOK_VERIFY_TOKEN', 'meta_webhook_verify_token'),
    ('ADMIN_SECRET_KEY', 'admin_secret_key'),
]


class Command(BaseCommand):
    help = "Verify Pydantic settings are loaded correctly"

    def handle(self, *args, **options):
        self.stdout.write("Checking Pydantic settings...\n")

        self.stdout.write(f"  DJANGO_DEBUG: {settings.django_debug}")
        self.stdout.write(f"  ALLOWED_HOSTS: {settings.allowed_hosts_list}")

        # Show whether keys are configured, never their values
        missing = []
        for label, field in SECRET_FIELDS:
            configured = bool(getattr(settings, field))
            if not configured:
                missing.append(label)
            self.stdout.write(f"  {label}: {'configured' if configured else 'NOT SET'}")

        self.stdout.write(f"  CHAT_MODEL: {settings.chat_model} (temperature {settings.chat_temperature})")
        self.stdout.write(f"  EMBEDDING_MODEL: {settings.embedding_model}")
        self.stdout.write(f"  VECTOR_TABLE_NAME: {settings.vector_table_name} / {settings.vector_query_name}")
        self.stdout.write(f"  CHUNK_SIZE: {settings.chunk_size} overlap {settings.chunk_overlap}")
        self.stdout.write(f"  ALLOWED_FILE_TYPES: {settings.allowed_file_types_list}")

        if missing:
            self.stdout.write(self.style.WARNING(f"\nMissing: {', '.join(missing)}"))
        else:
            self.stdout.write(self.style.SUCCESS("\nSettings loaded successfully!"))
