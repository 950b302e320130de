import logging

from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed

from core.clients.supabase_client import get_supabase_client
from core.messages import INVALID_TOKEN_MESSAGE

logger = logging.getLogger(__name__)


class SupabaseUser:
    """Request user resolved from a Supabase access token."""

    is_authenticated = True
    is_anonymous = False

    def __init__(self, id, email=None, user_metadata=None, app_metadata=None):
        self.id = str(id)
        self.email = email
        self.user_metadata = user_metadata or {}
        self.app_metadata = app_metadata or {}

    @classmethod
    def from_auth_user(cls, user):
        return cls(
            id=user.id,
            email=user.email,
            user_metadata=user.user_metadata,
            app_metadata=user.app_metadata,
        )

    @property
    def pk(self):
        return self.id

    @property
    def has_admin_claim(self) -> bool:
        """Admin flag carried inside the token itself."""
        return (
            self.user_metadata.get('is_admin') is True
            or self.app_metadata.get('role') == 'admin'
        )

    def __str__(self):
        return self.email or self.id


class SupabaseAuthentication(BaseAuthentication):
    """Resolve ``Authorization: Bearer <token>`` through Supabase Auth."""

    keyword = 'Bearer'

    def authenticate(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None
        if len(auth) != 2:
            raise AuthenticationFailed(INVALID_TOKEN_MESSAGE)

        try:
            token = auth[1].decode()
        except UnicodeError:
            raise AuthenticationFailed(INVALID_TOKEN_MESSAGE)

        try:
            response = get_supabase_client().auth.get_user(token)
        except Exception as e:
            logger.warning(f"Token verification failed: {str(e)}")
            raise AuthenticationFailed(INVALID_TOKEN_MESSAGE)

        if not response or not response.user:
            raise AuthenticationFailed(INVALID_TOKEN_MESSAGE)

        return SupabaseUser.from_auth_user(response.user), token

    def authenticate_header(self, request):
        return self.keyword
