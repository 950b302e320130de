"""
Unit tests for the WhatsApp Business gateway against a mocked Graph API.
"""
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from rest_framework.exceptions import NotFound, ValidationError

from apps.whatsapp import views as whatsapp_views
from apps.whatsapp.services import PHONE_ERROR_MESSAGES, WhatsAppError, WhatsAppService
from settings import settings


class GraphAPI:
    """Routes Graph API requests to canned responses and records them."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path_suffix, status_code=200, body=None):
        self.routes[(method, path_suffix)] = (status_code, body if body is not None else {})

    def __call__(self, request):
        self.requests.append(request)
        for (method, suffix), (status_code, body) in self.routes.items():
            if request.method == method and request.url.path.endswith(suffix):
                return httpx.Response(status_code, json=body)
        return httpx.Response(404, json={"error": {"message": f"no route for {request.url.path}"}})

    def last(self, path_suffix):
        return [r for r in self.requests if r.url.path.endswith(path_suffix)][-1]


class DiscardingExecutor:
    def submit(self, fn, *args):
        return None


def businesses(*phone_numbers, waba_id='waba-1'):
    return {
        "data": [{
            "owned_whatsapp_business_accounts": {
                "data": [{
                    "id": waba_id,
                    "name": "Mindful Clinic",
                    "phone_numbers": {"data": list(phone_numbers)},
                }]
            }
        }]
    }


@pytest.fixture
def graph():
    return GraphAPI()


@pytest.fixture
def service(graph, fake_db):
    return WhatsAppService(http_client=httpx.Client(transport=httpx.MockTransport(graph)), client=fake_db)


@pytest.fixture
def linked_account(fake_db, user):
    fake_db.rows('whatsapp_accounts').append({
        'user_id': user.id,
        'waba_id': 'waba-1',
        'phone_number_id': 'pn-1',
        'access_token': 'token-1',
        'verified_name': 'Mindful Clinic',
        'display_phone_number': '+15550001',
    })


@pytest.fixture
def webhook_settings(monkeypatch):
    monkeypatch.setattr(settings, 'meta_webhook_verify_token', 'hub-secret')
    monkeypatch.setattr(settings, 'meta_webhook_url', 'https://api.example.com/api/whatsapp/webhook')


@pytest.mark.unit
class TestOnboarding:

    def test_authorization_url(self, service, monkeypatch):
        monkeypatch.setattr(settings, 'meta_app_id', 'app-1')

        url = urlparse(service.get_authorization_url('https://app.example.com/cb'))
        params = parse_qs(url.query)

        assert url.netloc == 'www.facebook.com'
        assert params['client_id'] == ['app-1']
        assert params['redirect_uri'] == ['https://app.example.com/cb']
        assert 'whatsapp_business_messaging' in params['scope'][0]

    def test_complete_integration_persists_account(self, service, graph, fake_db, user, webhook_settings):
        graph.add('GET', '/oauth/access_token', body={"access_token": "long-lived"})
        graph.add('POST', '/pn-1/register', body={"success": True})
        graph.add('POST', '/waba-1/subscribed_apps', body={"success": True})

        assert service.complete_integration('code-1', user.id, 'waba-1', 'pn-1') is True

        stored = fake_db.rows('whatsapp_accounts')
        assert len(stored) == 1
        assert stored[0]['access_token'] == 'long-lived'
        subscription = json.loads(graph.last('/subscribed_apps').content)
        assert subscription['callback_url'] == settings.meta_webhook_url
        assert 'messages' in subscription['fields']

    def test_reintegration_overwrites(self, service, fake_db, user):
        service.save_whatsapp_details(user.id, 'waba-1', 'pn-1', 'old')
        service.save_whatsapp_details(user.id, 'waba-2', 'pn-2', 'new')

        stored = fake_db.rows('whatsapp_accounts')
        assert len(stored) == 1
        assert stored[0]['waba_id'] == 'waba-2'

    def test_token_exchange_failure_stops_integration(self, service, graph, fake_db, user):
        graph.add('GET', '/oauth/access_token', 400, {"error": {"message": "Invalid verification code"}})

        with pytest.raises(WhatsAppError) as excinfo:
            service.complete_integration('bad', user.id, 'waba-1', 'pn-1')

        assert str(excinfo.value.detail) == "Failed to exchange code for token: Invalid verification code"
        assert fake_db.rows('whatsapp_accounts') == []

    def test_token_integration_uses_first_number(self, service, graph, fake_db, user):
        graph.add('GET', '/me/businesses', body=businesses(
            {"id": "pn-9", "display_phone_number": "+1 555 0009", "verified_name": "Clinic"},
        ))

        details = service.complete_token_integration('token-9', user.id)

        assert details["phone_number_id"] == "pn-9"
        assert fake_db.rows('whatsapp_accounts')[0]['display_phone_number'] == "+1 555 0009"

    def test_token_integration_without_numbers(self, service, graph, user):
        graph.add('GET', '/me/businesses', body=businesses())

        with pytest.raises(WhatsAppError):
            service.complete_token_integration('token-9', user.id)


@pytest.mark.unit
class TestPhoneNumbers:

    def test_digits_only(self, service):
        with pytest.raises(ValidationError):
            service.create_phone_number('t', '1', '555-0100', 'Clinic')

    def test_length_bounds(self, service):
        with pytest.raises(ValidationError):
            service.create_phone_number('t', '1', '123', 'Clinic')

    def test_account_limit(self, service, graph):
        graph.add('GET', '/me/businesses', body=businesses({"id": "a"}, {"id": "b"}))

        with pytest.raises(ValidationError, match="Maximum number of phone numbers"):
            service.create_phone_number('t', '1', '5550100', 'Clinic')

    def test_duplicate_number(self, service, graph):
        graph.add('GET', '/me/businesses', body=businesses({"id": "a", "display_phone_number": "+15550100"}))

        with pytest.raises(ValidationError, match="already registered"):
            service.create_phone_number('t', '1', '5550100', 'Clinic')

    def test_no_business_account(self, service, graph):
        graph.add('GET', '/me/businesses', body={"data": []})

        with pytest.raises(NotFound):
            service.create_phone_number('t', '1', '5550100', 'Clinic')

    def test_creates_on_first_account(self, service, graph):
        graph.add('GET', '/me/businesses', body=businesses())
        graph.add('POST', '/waba-1/phone_numbers', body={"id": "pn-new"})

        assert service.create_phone_number('t', '44', '7700900123', 'Clinic') == 'pn-new'
        sent = json.loads(graph.last('/phone_numbers').content)
        assert sent == {'cc': '44', 'phone_number': '7700900123', 'verified_name': 'Clinic'}

    def test_known_subcode_gets_friendly_message(self, service, graph):
        graph.add('GET', '/me/businesses', body=businesses())
        graph.add('POST', '/waba-1/phone_numbers', 400, {"error": {"message": "raw", "error_subcode": 3095008}})

        with pytest.raises(WhatsAppError) as excinfo:
            service.create_phone_number('t', '1', '5550100', 'Clinic')

        assert str(excinfo.value.detail) == PHONE_ERROR_MESSAGES[3095008]

    def test_verification_code_strips_dashes(self, service, graph):
        graph.add('POST', '/pn-1/verify_code', body={"success": True})

        assert service.verify_phone_number('t', 'pn-1', '123-456') is True
        assert graph.last('/verify_code').url.params['code'] == '123456'


@pytest.mark.unit
class TestMessaging:

    def test_send_text_message(self, service, graph, user, linked_account):
        graph.add('POST', '/pn-1/messages', body={"messages": [{"id": "wamid.1"}]})

        result = service.send_whatsapp_message(user.id, '15550199', 'text', 'You are doing well')

        assert result == {"messageId": "wamid.1", "status": "sent"}
        request = graph.last('/messages')
        assert request.headers['Authorization'] == 'Bearer token-1'
        assert json.loads(request.content)['text'] == {'body': 'You are doing well'}

    def test_send_without_account(self, service, user):
        with pytest.raises(NotFound):
            service.send_whatsapp_message(user.id, '15550199', 'text', 'hi')

    def test_template_payload(self):
        payload = WhatsAppService.build_message_payload('1', 'template', {'name': 'welcome'})
        assert payload['type'] == 'template'
        assert payload['template'] == {'name': 'welcome'}

    def test_unknown_message_type(self):
        with pytest.raises(ValidationError):
            WhatsAppService.build_message_payload('1', 'image', {})


@pytest.mark.unit
class TestWebhook:

    def test_verification_handshake(self, service, webhook_settings):
        assert service.verify_webhook('subscribe', 'hub-secret', 'challenge-1') == 'challenge-1'
        assert service.verify_webhook('subscribe', 'wrong', 'challenge-1') is None
        assert service.verify_webhook('unsubscribe', 'hub-secret', 'challenge-1') is None

    def test_unconfigured_token_never_verifies(self, service, monkeypatch):
        monkeypatch.setattr(settings, 'meta_webhook_verify_token', None)
        assert service.verify_webhook('subscribe', 'anything', 'c') is None

    def test_event_counts_messages(self, service):
        payload = {
            "object": "whatsapp_business_account",
            "entry": [{
                "changes": [
                    {"field": "messages", "value": {"messages": [{"id": "m1", "from": "1", "type": "text"}]}},
                    {"field": "messages", "value": {"statuses": [{"id": "s1"}]}},
                    {"field": "account_update", "value": {}},
                ]
            }],
        }

        assert service.process_webhook_event(payload) == 1
        assert service.process_webhook_event({"object": "page"}) == 0


@pytest.mark.unit
class TestWhatsAppEndpoints:

    @pytest.fixture
    def endpoint_service(self, service, monkeypatch):
        monkeypatch.setattr(whatsapp_views, 'get_whatsapp_service', lambda: service)
        return service

    def test_webhook_get_returns_challenge(self, api_client, endpoint_service, webhook_settings):
        response = api_client.get('/api/whatsapp/webhook', {
            'hub.mode': 'subscribe', 'hub.verify_token': 'hub-secret', 'hub.challenge': '42'
        })

        assert response.status_code == 200
        assert response.content == b'42'

    def test_webhook_get_rejects_bad_token(self, api_client, endpoint_service, webhook_settings):
        response = api_client.get('/api/whatsapp/webhook', {
            'hub.mode': 'subscribe', 'hub.verify_token': 'nope', 'hub.challenge': '42'
        })

        assert response.status_code == 403

    def test_webhook_post_acknowledges_and_hands_off(self, api_client, endpoint_service, monkeypatch):
        submitted = []

        class ImmediateExecutor:
            def submit(self, fn, *args):
                submitted.append(args)
                fn(*args)

        monkeypatch.setattr(whatsapp_views, 'webhook_executor', ImmediateExecutor())
        payload = {"object": "whatsapp_business_account", "entry": []}

        response = api_client.post('/api/whatsapp/webhook', payload, format='json')

        assert response.status_code == 200
        assert response.content == b'EVENT_RECEIVED'
        assert submitted == [(payload,)]

    def test_webhook_ignores_bearer_header(self, api_client, endpoint_service, monkeypatch):
        monkeypatch.setattr(whatsapp_views, 'webhook_executor', DiscardingExecutor())

        response = api_client.post(
            '/api/whatsapp/webhook', {"object": "x"}, format='json', HTTP_AUTHORIZATION='Bearer junk'
        )

        assert response.status_code == 200

    def test_account_missing(self, user_client, endpoint_service):
        response = user_client.get('/api/whatsapp/account')

        assert response.status_code == 404
        assert response.json()["msg"] == "No WhatsApp account found for this user"

    def test_send_message_requires_content(self, user_client, endpoint_service, linked_account):
        response = user_client.post('/api/whatsapp/send-message', {'to': '1555', 'type': 'text'}, format='json')

        assert response.status_code == 400
        assert response.json()["msg"] == "Message content is required"

    def test_graph_error_is_passed_through(self, user_client, endpoint_service, graph, linked_account):
        graph.add('POST', '/pn-1/messages', 400, {"error": {"message": "Recipient not in allowed list"}})

        response = user_client.post(
            '/api/whatsapp/send-message', {'to': '1555', 'type': 'text', 'content': 'hi'}, format='json'
        )

        assert response.status_code == 500
        assert response.json() == {
            "status": False,
            "msg": "Failed to send WhatsApp message: Recipient not in allowed list",
        }

    @pytest.mark.parametrize('payload', [
        {'country_code': '1'},
        {'country_code': '1', 'phone_number': '5550100', 'verified_name': ''},
        {},
    ])
    def test_register_phone_number_requires_fields(self, user_client, endpoint_service, graph, linked_account, payload):
        response = user_client.post('/api/whatsapp/register-phone-number', payload, format='json')

        assert response.status_code == 400
        assert response.json()["msg"] == "Country code, phone number, and verified name are required"
        assert graph.requests == []
