import logging
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache

from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .serializers import (
    CloudApiRegistrationSerializer,
    CompleteIntegrationSerializer,
    ExchangeCodeSerializer,
    PhoneNumberSerializer,
    RegisterPhoneNumberSerializer,
    SendMessageSerializer,
    TokenIntegrationSerializer,
    VerifyPhoneNumberSerializer,
)
from .services import WhatsAppService

logger = logging.getLogger(__name__)

# Webhook events are handled after Meta has been acknowledged
webhook_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix='whatsapp-webhook')


@lru_cache
def get_whatsapp_service() -> WhatsAppService:
    return WhatsAppService()


def _process_event(payload):
    try:
        handled = get_whatsapp_service().process_webhook_event(payload)
        logger.info(f"Processed webhook event with {handled} messages")
    except Exception as e:
        logger.error(f"Error processing webhook event: {str(e)}", exc_info=True)


@api_view(['GET'])
@permission_classes([AllowAny])
def auth_url(request):
    url = get_whatsapp_service().get_authorization_url(request.query_params.get('redirect_uri') or None)
    return Response({"status": True, "data": {"url": url}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def complete_integration(request):
    serializer = CompleteIntegrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    get_whatsapp_service().complete_integration(
        code=data['code'],
        user_id=request.user.id,
        waba_id=data['waba_id'],
        phone_number_id=data['phone_number_id'],
        redirect_uri=data.get('redirect_uri') or None,
    )
    return Response({"status": True, "msg": "WhatsApp integration completed successfully"})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def complete_token_integration(request):
    serializer = TokenIntegrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    details = get_whatsapp_service().complete_token_integration(
        serializer.validated_data['access_token'], request.user.id
    )
    return Response({
        "status": True,
        "msg": "WhatsApp integration completed successfully",
        "data": details
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def exchange_code(request):
    serializer = ExchangeCodeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    token_data = get_whatsapp_service().exchange_code_for_token(
        serializer.validated_data['code'], serializer.validated_data.get('redirect_uri') or None
    )
    return Response({"status": True, "data": token_data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def account(request):
    details = get_whatsapp_service().require_account(request.user.id)
    return Response({
        "status": True,
        "data": {
            "waba_id": details['waba_id'],
            "phone_number_id": details['phone_number_id'],
            "verified_name": details.get('verified_name'),
            "display_phone_number": details.get('display_phone_number'),
        }
    })


@api_view(['GET', 'POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def webhook(request):
    """Meta webhook: GET answers the subscription handshake, POST receives events."""
    if request.method == 'GET':
        challenge = get_whatsapp_service().verify_webhook(
            request.query_params.get('hub.mode'),
            request.query_params.get('hub.verify_token'),
            request.query_params.get('hub.challenge'),
        )
        if challenge is None:
            return HttpResponse('Verification failed', status=status.HTTP_403_FORBIDDEN, content_type='text/plain')
        return HttpResponse(challenge, content_type='text/plain')

    webhook_executor.submit(_process_event, request.data)
    return HttpResponse('EVENT_RECEIVED', content_type='text/plain')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def send_message(request):
    serializer = SendMessageSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    result = get_whatsapp_service().send_whatsapp_message(
        request.user.id, data['to'], data['type'], data['content']
    )
    return Response({"status": True, "msg": "Message sent successfully", "data": result})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def phone_numbers(request):
    service = get_whatsapp_service()
    details = service.require_account(request.user.id)
    numbers = service.fetch_phone_numbers(details['access_token'])
    return Response({
        "status": True,
        "data": [
            {
                "id": number.get('id'),
                "display_phone_number": number.get('display_phone_number'),
                "verified_name": number.get('verified_name'),
                "verification_status": number.get('code_verification_status'),
                "platform_type": number.get('platform_type'),
            }
            for number in numbers
        ]
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def register_phone_number(request):
    """Create a phone number on the user's account and send it a verification code."""
    serializer = RegisterPhoneNumberSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    service = get_whatsapp_service()
    details = service.require_account(request.user.id)
    phone_number_id = service.create_phone_number(
        details['access_token'], data['country_code'], data['phone_number'], data['verified_name']
    )
    service.request_verification_code(details['access_token'], phone_number_id)
    return Response({
        "status": True,
        "msg": "Phone number created. Verification code sent.",
        "data": {"phone_number_id": phone_number_id}
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def request_verification_code(request):
    serializer = PhoneNumberSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    service = get_whatsapp_service()
    details = service.require_account(request.user.id)
    success = service.request_verification_code(
        details['access_token'], serializer.validated_data['phone_number_id']
    )
    return Response({"status": True, "msg": "Verification code sent successfully", "data": {"success": success}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def verify_phone_number(request):
    serializer = VerifyPhoneNumberSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    service = get_whatsapp_service()
    details = service.require_account(request.user.id)
    verified = service.verify_phone_number(
        details['access_token'], data['phone_number_id'], data['verification_code']
    )
    return Response({"status": True, "msg": "Phone number verified successfully", "data": {"verified": verified}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def register_cloud_api(request):
    serializer = CloudApiRegistrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    service = get_whatsapp_service()
    details = service.require_account(request.user.id)
    registered = service.register_phone_number(
        details['access_token'], data['phone_number_id'], data.get('two_factor_pin') or None
    )
    return Response({
        "status": True,
        "msg": "Phone number registered for Cloud API",
        "data": {"registered": registered}
    })
