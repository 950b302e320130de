"""
Account flows on top of Supabase Auth.

Every public method returns a result dict ``{"status", "msg", "data"?,
"status_code"}`` that the views hand back unchanged. Provider-reported auth
errors become 4xx results; anything else propagates to the API exception
handler and is answered with a generic 500.
"""
import hmac
import logging
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional

from supabase import AuthError

from core.clients.supabase_client import (
    auth_client_options,
    create_auth_client,
    get_admin_client,
    get_supabase_client,
)
from settings import settings

logger = logging.getLogger(__name__)

PASSWORD_RESET_MESSAGE = "If your email is registered, you'll receive a password reset link shortly"
ADMIN_PASSWORD_RESET_MESSAGE = (
    "If your email is registered as an admin, you'll receive a password reset link shortly"
)
INVALID_RESET_TOKEN_MESSAGE = "Invalid or expired reset token. Please request a new password reset link."
INVALID_ADMIN_SECRET_MESSAGE = "Invalid admin authorization"
ALREADY_VERIFIED_MESSAGE = "Email is already verified. Please login instead."

# Default page size of the auth admin API
USERS_PAGE_SIZE = 50

# Where the PKCE verifier lands in the auth client's storage after an OAuth redirect is built
CODE_VERIFIER_KEY = "supabase.auth.token-code-verifier"


def _result(status: bool, msg: str, data: Optional[Dict] = None, status_code: int = 200) -> Dict:
    result = {"status": status, "msg": msg, "status_code": status_code}
    if data is not None:
        result["data"] = data
    return result


def _dump(obj):
    if obj is None or isinstance(obj, dict):
        return obj
    return obj.model_dump(mode="json")


def _error_message(error: Exception) -> str:
    return getattr(error, 'message', None) or str(error)


def _has_admin_claim(user) -> bool:
    return (
        (user.user_metadata or {}).get('is_admin') is True
        or (user.app_metadata or {}).get('role') == 'admin'
    )


def _secret_matches(provided: Optional[str]) -> bool:
    expected = settings.admin_secret_key
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


class AuthService:
    """Sign-up, login, OAuth, password reset and admin account flows."""

    def __init__(self, admin_client=None, public_client=None, auth_client_factory=None):
        self.admin = admin_client if admin_client is not None else get_admin_client()
        self.public = public_client if public_client is not None else get_supabase_client()
        self.auth_client_factory = auth_client_factory or create_auth_client

    # ----- Records -----

    def create_user_record(self, user_id: str, email: str, role: str = 'user') -> None:
        """Upsert the ``users`` row that backs the role lookup."""
        try:
            self.admin.table('users').upsert({
                'id': user_id,
                'email': email,
                'role': role,
                'created_at': datetime.now(timezone.utc).isoformat(),
            }, on_conflict='id').execute()
        except Exception as e:
            logger.error(f"Error creating user record for {user_id}: {str(e)}")

    def upsert_profile(self, user_id: str, full_name: str, is_admin: Optional[bool] = None) -> None:
        timestamp = datetime.now(timezone.utc).isoformat()
        profile = {
            'id': user_id,
            'full_name': full_name,
            'created_at': timestamp,
            'updated_at': timestamp,
        }
        if is_admin is not None:
            profile['is_admin'] = is_admin
        try:
            self.admin.table('profiles').upsert(profile, on_conflict='id').execute()
        except Exception as e:
            logger.error(f"Error creating profile for {user_id}: {str(e)}")

    def get_profile(self, user_id: str) -> Optional[Dict]:
        result = self.admin.table('profiles').select('*').eq('id', user_id).limit(1).execute()
        return result.data[0] if result.data else None

    def resolve_role(self, user) -> str:
        """Admin when the auth metadata or the profile row says so."""
        if _has_admin_claim(user):
            return 'admin'
        profile = self.get_profile(user.id) or {}
        if profile.get('is_admin') is True or profile.get('role') == 'admin':
            return 'admin'
        return 'user'

    def iter_auth_users(self) -> Iterator:
        """Yield every Supabase Auth user, one admin API page at a time.

        A short page is the last one.
        """
        page = 1
        while True:
            users = self.admin.auth.admin.list_users(page=page, per_page=USERS_PAGE_SIZE)
            yield from users
            if len(users) < USERS_PAGE_SIZE:
                return
            page += 1

    def find_auth_user(self, email: str):
        """Scan Supabase Auth users for an email address."""
        email = email.lower()
        return next(
            (user for user in self.iter_auth_users() if (user.email or '').lower() == email),
            None,
        )

    # ----- Sign up / login -----

    def sign_up(self, email: str, password: str, full_name: str) -> Dict:
        client = self.auth_client_factory()
        try:
            response = client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"full_name": full_name}},
            })
        except AuthError as e:
            return _result(False, _error_message(e), status_code=400)

        # Supabase answers repeat sign-ups with an identity-less user instead of an error
        if response.user is not None and not response.user.identities:
            return _result(False, "Email already in use", status_code=400)

        return _result(True, "Verification code sent to your email", {"user": _dump(response.user)})

    def verify_otp(self, email: str, token: str) -> Dict:
        client = self.auth_client_factory()
        try:
            response = client.auth.verify_otp({"email": email, "token": token, "type": "signup"})
        except AuthError as e:
            return _result(False, _error_message(e), status_code=400)

        user = response.user
        if user is not None:
            full_name = (user.user_metadata or {}).get('full_name', '')
            self.create_user_record(user.id, user.email or email)
            self.upsert_profile(user.id, full_name)

        return _result(True, "Email verified successfully", {
            "session": _dump(response.session),
            "user": _dump(user),
        })

    def resend_otp(self, email: str) -> Dict:
        user = self.find_auth_user(email)
        if user is None:
            return _result(False, "No user found with this email address", status_code=404)
        if getattr(user, 'email_confirmed_at', None):
            return _result(False, ALREADY_VERIFIED_MESSAGE, status_code=400)

        client = self.auth_client_factory()
        try:
            client.auth.resend({"type": "signup", "email": email})
        except AuthError as e:
            message = _error_message(e)
            lowered = message.lower()
            if "already confirmed" in lowered:
                return _result(False, ALREADY_VERIFIED_MESSAGE, status_code=400)
            if "rate limit" in lowered:
                return _result(False, "Too many requests. Please try again later.", status_code=429)
            return _result(False, message, status_code=400)

        return _result(True, "New verification code sent to your email")

    def login(self, email: str, password: str) -> Dict:
        client = self.auth_client_factory()
        try:
            response = client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as e:
            return _result(False, _error_message(e), status_code=400)

        if response.user is not None:
            self.create_user_record(
                response.user.id, response.user.email or email, self.resolve_role(response.user)
            )

        return _result(True, "Login successful", {
            "session": _dump(response.session),
            "user": _dump(response.user),
        })

    def sign_in_with_google(self) -> Dict:
        """Build the Google OAuth URL.

        The PKCE verifier is returned under ``code_verifier`` so the caller can
        keep it until the callback arrives.
        """
        options = auth_client_options()
        client = self.auth_client_factory(options)
        try:
            response = client.auth.sign_in_with_oauth({
                "provider": "google",
                "options": {
                    "redirect_to": f"{settings.app_url}/auth/callback",
                    "query_params": {"access_type": "offline", "prompt": "consent"},
                },
            })
        except AuthError as e:
            return _result(False, _error_message(e), status_code=400)

        result = _result(True, "Google authentication initiated", {"url": response.url})
        result["code_verifier"] = options.storage.get_item(CODE_VERIFIER_KEY)
        return result

    def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> Dict:
        client = self.auth_client_factory()
        params = {"auth_code": code}
        if code_verifier:
            params["code_verifier"] = code_verifier
        try:
            response = client.auth.exchange_code_for_session(params)
        except AuthError as e:
            return _result(False, _error_message(e), status_code=400)

        user = response.user
        if user is not None:
            metadata = user.user_metadata or {}
            full_name = metadata.get('full_name') or metadata.get('name') or ''
            self.create_user_record(user.id, user.email or '', self.resolve_role(user))
            if self.get_profile(user.id) is None:
                self.upsert_profile(user.id, full_name)

        return _result(True, "Authentication successful", {
            "session": _dump(response.session),
            "user": _dump(user),
        })

    def sign_out(self, token: Optional[str] = None) -> Dict:
        if token:
            try:
                self.admin.auth.admin.sign_out(token)
            except AuthError as e:
                return _result(False, _error_message(e), status_code=400)
        return _result(True, "Logout successful")

    def get_current_user(self, user) -> Dict:
        return _result(True, "User data retrieved", {
            "user": {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata,
                "app_metadata": user.app_metadata,
            },
            "profile": self.get_profile(user.id),
        })

    def get_all_users(self) -> Dict:
        users = [_dump(user) for user in self.iter_auth_users()]
        return _result(True, "Users retrieved successfully", {"users": users})

    # ----- Password reset -----

    def _send_reset_email(self, email: str, path: str) -> None:
        client = self.auth_client_factory()
        try:
            client.auth.reset_password_for_email(email, {"redirect_to": f"{settings.app_url}{path}"})
        except AuthError as e:
            logger.error(f"Password reset email failed: {_error_message(e)}")

    def request_password_reset(self, email: str) -> Dict:
        """Send a reset link without revealing whether the address exists."""
        if self.find_auth_user(email) is not None:
            self._send_reset_email(email, "/reset-password")
        return _result(True, PASSWORD_RESET_MESSAGE)

    def _user_from_reset_token(self, token: str):
        try:
            response = self.public.auth.get_user(token)
            if response and response.user:
                return response.user
        except AuthError as e:
            logger.info(f"Reset token is not an access token: {_error_message(e)}")

        try:
            response = self.auth_client_factory().auth.verify_otp({"token_hash": token, "type": "recovery"})
            return response.user
        except AuthError as e:
            logger.info(f"Reset token verification failed: {_error_message(e)}")
            return None

    def reset_password(self, password: str, token: str) -> Dict:
        user = self._user_from_reset_token(token)
        if user is None:
            return _result(False, INVALID_RESET_TOKEN_MESSAGE, status_code=400)

        try:
            self.admin.auth.admin.update_user_by_id(user.id, {"password": password})
        except AuthError as e:
            return _result(False, _error_message(e), status_code=400)
        return _result(True, "Password has been successfully reset")

    # ----- Admin accounts -----

    def sign_up_admin(self, email: str, password: str, full_name: str, admin_secret: str) -> Dict:
        if not _secret_matches(admin_secret):
            logger.warning(f"Rejected admin sign-up for {email}: bad admin secret")
            return _result(False, INVALID_ADMIN_SECRET_MESSAGE, status_code=403)

        try:
            response = self.admin.auth.admin.create_user({
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"full_name": full_name, "is_admin": True},
                "app_metadata": {"role": "admin"},
            })
        except AuthError as e:
            return _result(False, _error_message(e), status_code=400)

        user = response.user
        self.create_user_record(user.id, user.email or email, 'admin')
        self.upsert_profile(user.id, full_name, is_admin=True)
        logger.info(f"Created admin account {user.id}")

        return _result(True, "Admin account created successfully", {"user": _dump(user)})

    def reset_admin_password(self, password: str, token: str, admin_secret: str) -> Dict:
        if not _secret_matches(admin_secret):
            return _result(False, INVALID_ADMIN_SECRET_MESSAGE, status_code=403)

        user = self._user_from_reset_token(token)
        if user is None:
            return _result(False, INVALID_RESET_TOKEN_MESSAGE, status_code=400)
        if not _has_admin_claim(user):
            return _result(False, "This reset link is not valid for admin accounts", status_code=403)

        try:
            self.admin.auth.admin.update_user_by_id(user.id, {"password": password})
        except AuthError as e:
            return _result(False, _error_message(e), status_code=400)
        return _result(True, "Admin password has been successfully reset")

    def request_admin_password_reset(self, email: str) -> Dict:
        user = self.find_auth_user(email)
        if user is not None and _has_admin_claim(user):
            self._send_reset_email(email, "/admin/reset-password")
        return _result(True, ADMIN_PASSWORD_RESET_MESSAGE)

    def admin_login(self, email: str, password: str) -> Dict:
        client = self.auth_client_factory()
        try:
            response = client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as e:
            logger.info(f"Admin login failed for {email}: {_error_message(e)}")
            return _result(False, "Invalid credentials", status_code=401)

        user = response.user
        if self.resolve_role(user) != 'admin':
            if response.session is not None:
                try:
                    self.admin.auth.admin.sign_out(response.session.access_token)
                except AuthError as e:
                    logger.warning(f"Could not revoke non-admin session: {_error_message(e)}")
            return _result(False, "Unauthorized access. Admin privileges required.", status_code=403)

        self.create_user_record(user.id, user.email or email, 'admin')
        return _result(True, "Admin login successful", {
            "session": _dump(response.session),
            "user": _dump(user),
        })
