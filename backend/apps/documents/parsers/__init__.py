from .base import BaseParser
from .docx_parser import DOCXParser, parse_docx
from .pdf_parser import PDFParser, parse_pdf
from .text_parser import TextParser, parse_text

# Upload extension -> parser class
PARSER_MAP = {
    extension: parser
    for parser in (PDFParser, DOCXParser, TextParser)
    for extension in parser.SUPPORTED_EXTENSIONS
}

__all__ = [
    'BaseParser',
    'PDFParser', 'parse_pdf',
    'DOCXParser', 'parse_docx',
    'TextParser', 'parse_text',
    'PARSER_MAP',
]
