import logging
from functools import lru_cache

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsAdmin
from .serializers import (
    AnalyticsQuerySerializer,
    ChatMessageRequestSerializer,
    ChatTopicSerializer,
    CreateSessionSerializer,
    GenerateTitleSerializer,
    TopicChatSerializer,
    UpdateTitleSerializer,
)
from .services.chat_service import ChatService

logger = logging.getLogger(__name__)


@lru_cache
def get_chat_service() -> ChatService:
    """Build the chat service on first use so imports never touch the providers."""
    return ChatService()


def _answer_payload(result: dict) -> dict:
    payload = {"response": result["response"]}
    if result.get("sources") is not None:
        payload["sources"] = result["sources"]
    return payload


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def send_message(request):
    """Answer a message inside one of the caller's sessions."""
    serializer = ChatMessageRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    service = get_chat_service()
    service.get_owned_session(request.user, data['session_id'])
    result = service.process_message(
        user_id=request.user.id,
        session_id=data['session_id'],
        message=data['message'],
        category=data.get('category') or None,
    )
    return Response({"status": True, "data": _answer_payload(result)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_session(request):
    serializer = CreateSessionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    session_id = get_chat_service().create_chat_session(
        request.user.id, serializer.validated_data.get('title') or None
    )
    return Response({"status": True, "data": {"sessionId": session_id}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def chat_history(request, session_id):
    service = get_chat_service()
    service.get_owned_session(request.user, session_id)
    messages = [
        {"user": row['user_message'], "ai": row['ai_response'], "createdAt": row.get('created_at')}
        for row in service.get_chat_messages(session_id)
    ]
    return Response({"status": True, "data": {"messages": messages}})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def delete_session(request, session_id):
    get_chat_service().delete_chat_session(request.user, session_id)
    return Response({"status": True, "msg": "Chat session successfully deleted"})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_sessions(request):
    sessions = get_chat_service().get_user_chat_sessions(request.user.id)
    return Response({"status": True, "data": {"sessions": sessions}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def last_session(request):
    session_id = get_chat_service().get_last_chat_session(request.user.id)
    if not session_id:
        return Response(
            {"status": False, "msg": "No previous chat sessions found"},
            status=status.HTTP_404_NOT_FOUND
        )
    return Response({"status": True, "data": {"sessionId": session_id}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def start_topic_chat(request):
    serializer = TopicChatSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    result = get_chat_service().start_topic_chat(request.user.id, serializer.validated_data['topic'])
    return Response({
        "status": True,
        "data": {
            "sessionId": result['session_id'],
            "initialResponse": result["response"],
        }
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def generate_title(request):
    serializer = GenerateTitleSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    title = get_chat_service().generate_chat_title(request.user, data['session_id'], data['message'])
    return Response({"status": True, "data": {"title": title}})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_title(request, session_id):
    serializer = UpdateTitleSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    get_chat_service().update_chat_title(request.user, session_id, serializer.validated_data['title'])
    return Response({"status": True, "msg": "Chat title updated successfully"})


@api_view(['GET'])
@permission_classes([AllowAny])
def list_topics(request):
    topics = get_chat_service().get_chat_topics()
    return Response({"status": True, "data": {"topics": topics}})


# ============= Admin endpoints =============

@api_view(['POST'])
@permission_classes([IsAdmin])
def create_topic(request):
    serializer = ChatTopicSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    topic = get_chat_service().create_chat_topic(created_by=request.user.id, **serializer.validated_data)
    logger.info(f"Admin {request.user.id} created topic {topic.get('id')}")
    return Response(
        {"status": True, "msg": "Chat topic created successfully", "data": {"topic": topic}},
        status=status.HTTP_201_CREATED
    )


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAdmin])
def manage_topic(request, topic_id):
    service = get_chat_service()

    if request.method == 'DELETE':
        service.delete_chat_topic(topic_id)
        return Response({"status": True, "msg": "Chat topic deleted successfully"})

    serializer = ChatTopicSerializer(data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    topic = service.update_chat_topic(topic_id, dict(serializer.validated_data))
    return Response({"status": True, "msg": "Chat topic updated successfully", "data": {"topic": topic}})


@api_view(['GET'])
@permission_classes([IsAdmin])
def chat_analytics(request):
    serializer = AnalyticsQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)

    analytics = get_chat_service().get_chat_analytics(**serializer.validated_data)
    return Response({"status": True, "data": analytics})
