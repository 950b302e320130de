"""Management command to ingest a local file into the knowledge base."""
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from apps.documents.services.document_service import DocumentService


class Command(BaseCommand):
    help = 'Parse, chunk and embed a local document into the vector store'

    def add_arguments(self, parser):
        parser.add_argument('path', type=str, help='Path to a .pdf, .docx, .txt, .md or .html file')
        parser.add_argument('--title', type=str, help='Document title (defaults to the file name)')
        parser.add_argument('--description', type=str, default='')
        parser.add_argument('--category', type=str, default='general')

    def handle(self, *args, **options):
        path = Path(options['path'])
        if not path.is_file():
            raise CommandError(f"File not found: {path}")

        self.stdout.write(f"Ingesting {path.name}...")
        result = DocumentService().process_file(str(path), path.name, {
            'title': options['title'] or path.stem,
            'description': options['description'],
            'category': options['category'],
        })

        if not result['success']:
            raise CommandError(result['message'])

        self.stdout.write(self.style.SUCCESS(result['message']))
        self.stdout.write(f"  Document ID: {result['document_id']}")
