import logging
from functools import lru_cache

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsAdmin
from .serializers import (
    AdminRegisterSerializer,
    AdminResetPasswordSerializer,
    EmailSerializer,
    LoginSerializer,
    RegisterSerializer,
    ResetPasswordSerializer,
    VerifyOtpSerializer,
)
from .services import AuthService

logger = logging.getLogger(__name__)

CODE_VERIFIER_COOKIE = 'sb_code_verifier'


@lru_cache
def get_auth_service() -> AuthService:
    return AuthService()


def _respond(result: dict) -> Response:
    body = dict(result)
    status_code = body.pop('status_code', status.HTTP_200_OK)
    body.pop('code_verifier', None)
    return Response(body, status=status_code)


def _validated(serializer_class, data) -> dict:
    serializer = serializer_class(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def register(request):
    data = _validated(RegisterSerializer, request.data)
    return _respond(get_auth_service().sign_up(data['email'], data['password'], data['full_name']))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def verify_otp(request):
    data = _validated(VerifyOtpSerializer, request.data)
    return _respond(get_auth_service().verify_otp(data['email'], data['token']))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def resend_otp(request):
    data = _validated(EmailSerializer, request.data)
    return _respond(get_auth_service().resend_otp(data['email']))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def login(request):
    data = _validated(LoginSerializer, request.data)
    return _respond(get_auth_service().login(data['email'], data['password']))


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def google_sign_in(request):
    """Return the Google consent URL and keep the PKCE verifier in a signed cookie."""
    result = get_auth_service().sign_in_with_google()
    response = _respond(result)
    if result.get('code_verifier'):
        response.set_signed_cookie(
            CODE_VERIFIER_COOKIE,
            result['code_verifier'],
            max_age=600,
            httponly=True,
            samesite='Lax',
        )
    return response


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def oauth_callback(request):
    code = request.query_params.get('code')
    if not code:
        return Response({"status": False, "msg": "Code is required"}, status=status.HTTP_400_BAD_REQUEST)

    verifier = request.get_signed_cookie(CODE_VERIFIER_COOKIE, default=None, max_age=600)
    response = _respond(get_auth_service().exchange_code_for_session(code, verifier))
    response.delete_cookie(CODE_VERIFIER_COOKIE)
    return response


@api_view(['POST'])
@permission_classes([AllowAny])
def logout(request):
    return _respond(get_auth_service().sign_out(request.auth))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def current_user(request):
    return _respond(get_auth_service().get_current_user(request.user))


@api_view(['GET'])
@permission_classes([IsAdmin])
def list_users(request):
    return _respond(get_auth_service().get_all_users())


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def forgot_password(request):
    data = _validated(EmailSerializer, request.data)
    return _respond(get_auth_service().request_password_reset(data['email']))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def reset_password(request):
    data = _validated(ResetPasswordSerializer, request.data)
    return _respond(get_auth_service().reset_password(data['password'], data['token']))


# ============= Admin accounts =============

@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def admin_register(request):
    data = _validated(AdminRegisterSerializer, request.data)
    return _respond(get_auth_service().sign_up_admin(
        data['email'], data['password'], data['full_name'], data['admin_secret']
    ))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def admin_login(request):
    data = _validated(LoginSerializer, request.data)
    return _respond(get_auth_service().admin_login(data['email'], data['password']))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def admin_forgot_password(request):
    data = _validated(EmailSerializer, request.data)
    return _respond(get_auth_service().request_admin_password_reset(data['email']))


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def admin_reset_password(request):
    data = _validated(AdminResetPasswordSerializer, request.data)
    return _respond(get_auth_service().reset_admin_password(
        data['password'], data['token'], data['admin_secret']
    ))
