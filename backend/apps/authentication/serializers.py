from rest_framework import serializers


def _required(message: str) -> dict:
    return {'required': message, 'blank': message, 'null': message}


class EmailSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages=_required('Email is required'))


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages=_required('Email and password are required'))
    password = serializers.CharField(error_messages=_required('Email and password are required'))


class RegisterSerializer(serializers.Serializer):
    """Serializer for user registration."""
    email = serializers.EmailField(error_messages=_required('Email, password, and full name are required'))
    password = serializers.CharField(
        min_length=6,
        error_messages=_required('Email, password, and full name are required'),
    )
    fullName = serializers.CharField(
        source='full_name',
        max_length=255,
        error_messages=_required('Email, password, and full name are required'),
    )


class AdminRegisterSerializer(RegisterSerializer):
    adminSecret = serializers.CharField(
        source='admin_secret',
        error_messages=_required('Invalid admin authorization'),
    )


class VerifyOtpSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages=_required('Email and verification code are required'))
    token = serializers.CharField(error_messages=_required('Email and verification code are required'))


class ResetPasswordSerializer(serializers.Serializer):
    password = serializers.CharField(
        min_length=6,
        error_messages=_required('New password and reset token are required'),
    )
    token = serializers.CharField(error_messages=_required('New password and reset token are required'))


class AdminResetPasswordSerializer(ResetPasswordSerializer):
    adminSecret = serializers.CharField(
        source='admin_secret',
        error_messages=_required('Invalid admin authorization'),
    )
