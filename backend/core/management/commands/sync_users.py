"""Management command to backfill the users table from Supabase Auth."""
from django.core.management.base import BaseCommand

from apps.authentication.services import AuthService


class Command(BaseCommand):
    help = "Create or refresh a users row (id, email, role) for every Supabase Auth user"

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help="Only print the roles that would be written")

    def handle(self, *args, **options):
        service = AuthService()
        users = list(service.iter_auth_users())
        self.stdout.write(f"Found {len(users)} users in Supabase Auth")

        admins = 0
        for user in users:
            role = service.resolve_role(user)
            admins += role == 'admin'
            if options['dry_run']:
                self.stdout.write(f"  {user.email}: {role}")
                continue
            service.create_user_record(user.id, user.email or '', role)

        summary = f"{len(users)} users ({admins} admins)"
        if options['dry_run']:
            self.stdout.write(self.style.WARNING(f"Dry run, nothing written: {summary}"))
        else:
            self.stdout.write(self.style.SUCCESS(f"Synced {summary}"))
