from rest_framework import serializers


def _required(message: str) -> dict:
    return {'required': message, 'blank': message, 'null': message}


PHONE_FIELDS_REQUIRED = 'Country code, phone number, and verified name are required'


class ExchangeCodeSerializer(serializers.Serializer):
    code = serializers.CharField(error_messages=_required('Code is required'))
    redirect_uri = serializers.CharField(required=False, allow_blank=True)


class CompleteIntegrationSerializer(ExchangeCodeSerializer):
    waba_id = serializers.CharField(error_messages=_required('WhatsApp Business Account ID is required'))
    phone_number_id = serializers.CharField(error_messages=_required('Phone Number ID is required'))


class TokenIntegrationSerializer(serializers.Serializer):
    access_token = serializers.CharField(error_messages=_required('Access token is required'))


class SendMessageSerializer(serializers.Serializer):
    to = serializers.CharField(error_messages=_required('Recipient phone number is required'))
    type = serializers.ChoiceField(choices=['text', 'template'], default='text')
    content = serializers.JSONField(error_messages=_required('Message content is required'))

    def validate(self, attrs):
        content = attrs['content']
        if attrs['type'] == 'text' and not (isinstance(content, str) and content.strip()):
            raise serializers.ValidationError({'content': 'Message content is required'})
        if attrs['type'] == 'template' and not isinstance(content, dict):
            raise serializers.ValidationError({'content': 'Template content must be an object'})
        return attrs


class RegisterPhoneNumberSerializer(serializers.Serializer):
    country_code = serializers.CharField(error_messages=_required(PHONE_FIELDS_REQUIRED))
    phone_number = serializers.CharField(error_messages=_required(PHONE_FIELDS_REQUIRED))
    verified_name = serializers.CharField(error_messages=_required(PHONE_FIELDS_REQUIRED))


class PhoneNumberSerializer(serializers.Serializer):
    phone_number_id = serializers.CharField(error_messages=_required('Phone Number ID is required'))


class VerifyPhoneNumberSerializer(PhoneNumberSerializer):
    verification_code = serializers.CharField(error_messages=_required('Verification code is required'))


class CloudApiRegistrationSerializer(PhoneNumberSerializer):
    two_factor_pin = serializers.CharField(required=False, allow_blank=True)
