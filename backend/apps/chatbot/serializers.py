from rest_framework import serializers


def _required(message: str) -> dict:
    return {'required': message, 'blank': message, 'null': message}


class ChatMessageRequestSerializer(serializers.Serializer):
    """Serializer for a chat message request."""
    message = serializers.CharField(max_length=10000, error_messages=_required('Message is required'))
    sessionId = serializers.CharField(source='session_id', error_messages=_required('Session ID is required'))
    category = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class CreateSessionSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)


class TopicChatSerializer(serializers.Serializer):
    topic = serializers.CharField(max_length=255, error_messages=_required('Topic is required'))


class GenerateTitleSerializer(serializers.Serializer):
    message = serializers.CharField(error_messages=_required('Message is required'))
    sessionId = serializers.CharField(source='session_id', error_messages=_required('Session ID is required'))


class UpdateTitleSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, error_messages=_required('Title is required'))


class ChatTopicSerializer(serializers.Serializer):
    """Serializer for creating or updating a chat topic."""
    title = serializers.CharField(max_length=255, error_messages=_required('Topic title is required'))
    description = serializers.CharField(required=False, allow_blank=True, default='')
    icon = serializers.CharField(required=False, allow_blank=True, default='')
    category = serializers.CharField(required=False, allow_blank=True, default='general')
    displayOrder = serializers.IntegerField(source='display_order', required=False, default=0)


class AnalyticsQuerySerializer(serializers.Serializer):
    startDate = serializers.DateTimeField(source='start_date', required=False)
    endDate = serializers.DateTimeField(source='end_date', required=False)

    def validate(self, attrs):
        start, end = attrs.get('start_date'), attrs.get('end_date')
        if start and end and start > end:
            raise serializers.ValidationError("startDate must be before endDate")
        return attrs
