from django.urls import path

from . import views

urlpatterns = [
    path('auth-url', views.auth_url, name='whatsapp_auth_url'),
    path('complete-integration', views.complete_integration, name='whatsapp_complete_integration'),
    path('complete-token-integration', views.complete_token_integration, name='whatsapp_complete_token_integration'),
    path('exchange-code', views.exchange_code, name='whatsapp_exchange_code'),
    path('account', views.account, name='whatsapp_account'),
    path('phone-numbers', views.phone_numbers, name='whatsapp_phone_numbers'),
    path('webhook', views.webhook, name='whatsapp_webhook'),
    path('send-message', views.send_message, name='whatsapp_send_message'),
    path('register-phone-number', views.register_phone_number, name='whatsapp_register_phone_number'),
    path('request-verification-code', views.request_verification_code, name='whatsapp_request_verification_code'),
    path('verify-phone-number', views.verify_phone_number, name='whatsapp_verify_phone_number'),
    path('register-cloud-api', views.register_cloud_api, name='whatsapp_register_cloud_api'),
]
