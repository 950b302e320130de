import logging
from functools import lru_cache

from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.permissions import IsAdmin
from .serializers import DocumentUploadSerializer
from .services.document_service import DocumentService

logger = logging.getLogger(__name__)


@lru_cache
def get_document_service() -> DocumentService:
    return DocumentService()


@api_view(['POST'])
@permission_classes([IsAdmin])
@parser_classes([MultiPartParser, FormParser])
def upload_document(request):
    """
    Upload and ingest a document into the knowledge base.

    POST /api/document/upload
    Form data:
        - file: The file to upload
        - title: Document title
        - description, category: optional
    """
    serializer = DocumentUploadSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    result = get_document_service().process_document(data['file'], {
        "title": data['title'],
        "description": data.get('description', ''),
        "category": data.get('category') or 'general',
    })

    if not result["success"]:
        return Response({"status": False, "msg": result["message"]}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Admin {request.user.id} uploaded document {result['document_id']}")
    return Response({
        "status": True,
        "msg": result["message"],
        "data": {"documentId": result["document_id"]}
    })


@api_view(['GET'])
@permission_classes([IsAdmin])
def list_documents(request):
    documents = get_document_service().list_documents()
    return Response({"status": True, "data": {"documents": documents}})


@api_view(['GET'])
@permission_classes([IsAdmin])
def documents_by_category(request, category):
    documents = get_document_service().get_documents_by_category(category)
    return Response({"status": True, "data": {"documents": documents}})


@api_view(['GET'])
@permission_classes([AllowAny])
def list_categories(request):
    categories = get_document_service().get_categories()
    return Response({"status": True, "data": {"categories": categories}})


@api_view(['GET'])
@permission_classes([IsAdmin])
def document_stats(request):
    return Response({"status": True, "data": get_document_service().get_document_stats()})


@api_view(['DELETE'])
@permission_classes([IsAdmin])
def delete_document(request, document_id):
    result = get_document_service().delete_document(document_id)
    if not result["success"]:
        return Response(
            {"status": False, "msg": result["message"]},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    return Response({"status": True, "msg": result["message"]})
