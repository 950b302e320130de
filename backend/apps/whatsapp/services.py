"""
WhatsApp Business integration over the Meta Graph API.

Covers the embedded-signup OAuth flow, phone number onboarding, outbound
messages and inbound webhook events. Account credentials are kept in the
``whatsapp_accounts`` table, one row per user.
"""
import hmac
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urlencode

import httpx
from rest_framework.exceptions import NotFound, ValidationError

from core.clients.supabase_client import get_admin_client
from core.exceptions import ServiceError
from settings import settings

logger = logging.getLogger(__name__)

# Business management edges are pinned to a newer Graph version
BUSINESS_API_URL = "https://graph.facebook.com/v22.0"
OAUTH_SCOPES = "whatsapp_business_management,whatsapp_business_messaging,business_management"
WEBHOOK_FIELDS = [
    'messages',
    'message_deliveries',
    'messaging_postbacks',
    'message_reads',
    'message_template_status_update',
]
MAX_PHONE_NUMBERS = 2
PHONE_ERROR_MESSAGES = {
    3095008: 'Cannot add phone number to WhatsApp Business Account. Check account verification status.',
    200000: 'General account configuration issue.',
}


class WhatsAppError(ServiceError):
    """A Graph API call failed; the provider's message is passed to the client."""

    default_detail = "WhatsApp request failed"
    expose = True

    def __init__(self, detail=None, graph_error: Optional[Dict] = None):
        super().__init__(detail)
        self.graph_error = graph_error or {}


def _graph_error(response: httpx.Response) -> Dict:
    try:
        return response.json().get('error') or {}
    except ValueError:
        return {"message": response.text}


class WhatsAppService:
    """Client for the WhatsApp Business Cloud API."""

    def __init__(self, http_client: Optional[httpx.Client] = None, client=None):
        self.http = http_client or httpx.Client(timeout=30)
        self._client = client
        self.api_url = settings.graph_api_url

    @property
    def db(self):
        if self._client is None:
            self._client = get_admin_client()
        return self._client

    def _request(
        self,
        method: str,
        url: str,
        error_prefix: str,
        access_token: Optional[str] = None,
        **kwargs
    ) -> Dict:
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        try:
            response = self.http.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            error = _graph_error(e.response)
            message = error.get('message') or str(e)
            logger.error(f"{error_prefix}: {message}")
            raise WhatsAppError(f"{error_prefix}: {message}", graph_error=error) from e
        except httpx.HTTPError as e:
            logger.error(f"{error_prefix}: {str(e)}")
            raise WhatsAppError(f"{error_prefix}: {str(e)}") from e

    # ----- OAuth / onboarding -----

    def get_authorization_url(self, redirect_uri: Optional[str] = None) -> str:
        redirect_uri = redirect_uri or settings.meta_redirect_uri
        params = urlencode({
            'client_id': settings.meta_app_id,
            'config_id': settings.meta_app_config_id,
            'response_type': 'token',
            'redirect_uri': redirect_uri,
            'display': 'popup',
            'scope': OAUTH_SCOPES,
            'fallback_redirect_uri': redirect_uri,
        })
        return f"https://www.facebook.com/{settings.meta_api_version}/dialog/oauth?{params}"

    def exchange_code_for_token(self, code: str, redirect_uri: Optional[str] = None) -> Dict:
        return self._request(
            'GET',
            f"{self.api_url}/oauth/access_token",
            "Failed to exchange code for token",
            params={
                'client_id': settings.meta_app_id,
                'client_secret': settings.meta_app_secret,
                'redirect_uri': redirect_uri or settings.meta_redirect_uri,
                'code': code,
            },
        )

    def _fetch_businesses(self, access_token: str, fields: str, error_prefix: str) -> List[Dict]:
        data = self._request(
            'GET',
            f"{BUSINESS_API_URL}/me/businesses",
            error_prefix,
            params={'access_token': access_token, 'fields': fields},
        )
        return data.get('data') or []

    @staticmethod
    def _owned_accounts(businesses: List[Dict]) -> List[Dict]:
        accounts = []
        for business in businesses:
            accounts.extend((business.get('owned_whatsapp_business_accounts') or {}).get('data') or [])
        return accounts

    def fetch_whatsapp_business_accounts(self, access_token: str) -> List[Dict]:
        """Flatten every business's WhatsApp accounts with their phone numbers."""
        businesses = self._fetch_businesses(
            access_token,
            'owned_whatsapp_business_accounts{phone_numbers,id,name}',
            "Failed to fetch WhatsApp Business Accounts",
        )
        accounts = [
            {
                "id": account['id'],
                "name": account.get('name'),
                "phone_numbers": [
                    {
                        "id": phone['id'],
                        "display_phone_number": phone.get('display_phone_number'),
                        "verified_name": phone.get('verified_name'),
                    }
                    for phone in (account.get('phone_numbers') or {}).get('data') or []
                ],
            }
            for account in self._owned_accounts(businesses)
        ]
        if not accounts:
            logger.warning("No WhatsApp Business Accounts found for access token")
        return accounts

    def fetch_phone_numbers(self, access_token: str) -> List[Dict]:
        businesses = self._fetch_businesses(
            access_token,
            'owned_whatsapp_business_accounts{phone_numbers'
            '{id,display_phone_number,verified_name,code_verification_status,platform_type}}',
            "Failed to fetch phone numbers",
        )
        numbers = []
        for account in self._owned_accounts(businesses):
            numbers.extend((account.get('phone_numbers') or {}).get('data') or [])
        return numbers

    def register_phone_number(self, access_token: str, phone_number_id: str, pin: Optional[str] = None) -> bool:
        payload = {'messaging_product': 'whatsapp'}
        if pin:
            payload['pin'] = pin
        data = self._request(
            'POST',
            f"{self.api_url}/{phone_number_id}/register",
            "Failed to register phone number",
            access_token=access_token,
            json=payload,
        )
        return bool(data.get('success', True))

    def subscribe_to_webhooks(self, access_token: str, waba_id: str) -> bool:
        if not settings.meta_webhook_url:
            raise WhatsAppError("Webhook URL is not configured")
        self._request(
            'POST',
            f"{self.api_url}/{waba_id}/subscribed_apps",
            "Failed to subscribe to webhooks",
            json={
                'messaging_product': 'whatsapp',
                'access_token': access_token,
                'callback_url': settings.meta_webhook_url,
                'fields': WEBHOOK_FIELDS,
                'verify_token': settings.meta_webhook_verify_token,
            },
        )
        return True

    def save_whatsapp_details(
        self,
        user_id: str,
        waba_id: str,
        phone_number_id: str,
        access_token: str,
        verified_name: Optional[str] = None,
        display_phone_number: Optional[str] = None
    ) -> None:
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            self.db.table('whatsapp_accounts').upsert({
                'user_id': user_id,
                'waba_id': waba_id,
                'phone_number_id': phone_number_id,
                'access_token': access_token,
                'verified_name': verified_name,
                'display_phone_number': display_phone_number,
                'created_at': timestamp,
                'updated_at': timestamp,
            }, on_conflict='user_id').execute()
        except Exception as e:
            logger.error(f"Error saving WhatsApp details for {user_id}: {str(e)}")
            raise ServiceError(f"Failed to save WhatsApp details: {str(e)}") from e

    def complete_integration(
        self,
        code: str,
        user_id: str,
        waba_id: str,
        phone_number_id: str,
        redirect_uri: Optional[str] = None
    ) -> bool:
        """Exchange the code, register the number, subscribe webhooks, then persist."""
        token_data = self.exchange_code_for_token(code, redirect_uri)
        access_token = token_data['access_token']
        self.register_phone_number(access_token, phone_number_id)
        self.subscribe_to_webhooks(access_token, waba_id)
        self.save_whatsapp_details(user_id, waba_id, phone_number_id, access_token)
        logger.info(f"Completed WhatsApp integration for user {user_id}")
        return True

    def complete_token_integration(self, access_token: str, user_id: str) -> Dict:
        accounts = self.fetch_whatsapp_business_accounts(access_token)
        if not accounts:
            raise WhatsAppError("No WhatsApp Business Accounts found for the provided access token")

        account = accounts[0]
        if not account['phone_numbers']:
            raise WhatsAppError("No phone numbers found for the selected WhatsApp Business Account")

        phone = account['phone_numbers'][0]
        self.save_whatsapp_details(
            user_id,
            account['id'],
            phone['id'],
            access_token,
            verified_name=phone.get('verified_name'),
            display_phone_number=phone.get('display_phone_number'),
        )
        return {
            "waba_id": account['id'],
            "phone_number_id": phone['id'],
            "display_phone_number": phone.get('display_phone_number') or 'Unknown',
            "verified_name": phone.get('verified_name'),
        }

    def get_whatsapp_account(self, user_id: str) -> Optional[Dict]:
        result = (
            self.db.table('whatsapp_accounts')
            .select('waba_id, phone_number_id, user_id, verified_name, display_phone_number, access_token')
            .eq('user_id', user_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def require_account(self, user_id: str) -> Dict:
        account = self.get_whatsapp_account(user_id)
        if not account:
            raise NotFound("No WhatsApp account found for this user")
        return account

    # ----- Phone numbers -----

    @staticmethod
    def validate_phone_number(phone_number: str) -> None:
        if not phone_number.isdigit():
            raise ValidationError("Phone number must contain only digits")
        if not 7 <= len(phone_number) <= 15:
            raise ValidationError("Invalid phone number length")

    def create_phone_number(
        self, access_token: str, country_code: str, phone_number: str, verified_name: str
    ) -> str:
        """Add a phone number to the user's first WhatsApp Business Account."""
        self.validate_phone_number(phone_number)

        businesses = self._fetch_businesses(
            access_token,
            'owned_whatsapp_business_accounts{id,phone_numbers{id,display_phone_number}}',
            "Failed to fetch phone numbers",
        )
        accounts = self._owned_accounts(businesses)
        existing = [
            phone
            for account in accounts
            for phone in (account.get('phone_numbers') or {}).get('data') or []
        ]

        if len(existing) >= MAX_PHONE_NUMBERS:
            raise ValidationError(
                f"Maximum number of phone numbers ({MAX_PHONE_NUMBERS}) has been reached for this account"
            )
        if any(phone.get('display_phone_number') == f"+{country_code}{phone_number}" for phone in existing):
            raise ValidationError("This phone number is already registered")
        if not accounts:
            raise NotFound("No WhatsApp Business Accounts found")

        try:
            data = self._request(
                'POST',
                f"{BUSINESS_API_URL}/{accounts[0]['id']}/phone_numbers",
                "Failed to create phone number",
                access_token=access_token,
                json={'cc': country_code, 'phone_number': phone_number, 'verified_name': verified_name},
            )
        except WhatsAppError as e:
            subcode = e.graph_error.get('error_subcode')
            if subcode in PHONE_ERROR_MESSAGES:
                raise WhatsAppError(PHONE_ERROR_MESSAGES[subcode], graph_error=e.graph_error) from e
            raise
        return data['id']

    def request_verification_code(
        self, access_token: str, phone_number_id: str, method: str = 'SMS', language: str = 'en_US'
    ) -> bool:
        data = self._request(
            'POST',
            f"{BUSINESS_API_URL}/{phone_number_id}/request_code",
            "Failed to request verification code",
            access_token=access_token,
            params={'code_method': method, 'language': language},
        )
        return bool(data.get('success'))

    def verify_phone_number(self, access_token: str, phone_number_id: str, verification_code: str) -> bool:
        data = self._request(
            'POST',
            f"{BUSINESS_API_URL}/{phone_number_id}/verify_code",
            "Failed to verify phone number",
            access_token=access_token,
            params={'code': verification_code.replace('-', '')},
        )
        return bool(data.get('success'))

    # ----- Messaging -----

    @staticmethod
    def build_message_payload(to: str, message_type: str, content) -> Dict:
        payload = {
            'messaging_product': 'whatsapp',
            'recipient_type': 'individual',
            'to': to,
        }
        if message_type == 'text':
            return {**payload, 'type': 'text', 'text': {'body': content}}
        if message_type == 'template':
            return {**payload, 'type': 'template', 'template': content}
        raise ValidationError("Unsupported message type")

    def send_whatsapp_message(self, user_id: str, to: str, message_type: str, content) -> Dict:
        account = self.require_account(user_id)
        payload = self.build_message_payload(to, message_type, content)
        data = self._request(
            'POST',
            f"{self.api_url}/{account['phone_number_id']}/messages",
            "Failed to send WhatsApp message",
            access_token=account['access_token'],
            json=payload,
        )
        messages = data.get('messages') or [{}]
        return {"messageId": messages[0].get('id', 'Unknown'), "status": "sent"}

    # ----- Webhooks -----

    def verify_webhook(self, mode: Optional[str], token: Optional[str], challenge: Optional[str]) -> Optional[str]:
        """Return the challenge when Meta's subscription handshake is valid."""
        expected = settings.meta_webhook_verify_token
        if mode != 'subscribe' or not expected or not token:
            return None
        if not hmac.compare_digest(token.encode(), expected.encode()):
            return None
        return challenge

    def process_webhook_event(self, payload: Dict) -> int:
        """Walk the webhook payload and handle message changes.

        Returns the number of inbound messages seen.
        """
        if payload.get('object') != 'whatsapp_business_account':
            logger.info(f"Ignoring webhook object {payload.get('object')}")
            return 0

        handled = 0
        for entry in payload.get('entry') or []:
            for change in entry.get('changes') or []:
                if change.get('field') == 'messages':
                    handled += self._process_message_event(change.get('value') or {})
        return handled

    def _process_message_event(self, value: Dict) -> int:
        messages = value.get('messages') or []
        for message in messages:
            logger.info(
                f"Inbound WhatsApp message {message.get('id')} from {message.get('from')} "
                f"type={message.get('type')}"
            )
        return len(messages)
