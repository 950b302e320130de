from pathlib import Path

from rest_framework import serializers

from settings import settings


class DocumentUploadSerializer(serializers.Serializer):
    """Serializer for a knowledge-base upload."""
    file = serializers.FileField(error_messages={'required': 'No file uploaded', 'empty': 'No file uploaded'})
    title = serializers.CharField(max_length=255, error_messages={'required': 'Title is required', 'blank': 'Title is required'})
    description = serializers.CharField(required=False, allow_blank=True, default='')
    category = serializers.CharField(required=False, allow_blank=True, default='general')

    def validate_file(self, value):
        extension = Path(value.name).suffix.lower()
        if extension not in settings.allowed_file_types_list:
            raise serializers.ValidationError(
                f"Unsupported file type: {extension}. Allowed: {', '.join(settings.allowed_file_types_list)}"
            )
        if value.size > settings.max_file_size:
            raise serializers.ValidationError(
                f"File too large. Maximum size is {settings.max_file_size // (1024 * 1024)} MB"
            )
        return value
