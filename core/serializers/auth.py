import bleach
from rest_framework import serializers


class LoginSerializer(serializers.Serializer):
    """``account`` accepts a username or an email address."""
    account = serializers.CharField(required=False, allow_blank=True)
    username = serializers.CharField(required=False, allow_blank=True)
    email = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField()

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required')
        return v

    def validate(self, attrs):
        account = (attrs.get('account') or attrs.get('username') or attrs.get('email') or '').strip()
        if not account:
            raise serializers.ValidationError({'account': 'Username or email is required'})
        attrs['account'] = account
        return attrs


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(min_length=3, max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=8, write_only=True)
    fullName = serializers.CharField(max_length=150, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)

    def validate_username(self, v):
        v = v.strip()
        if not v.replace('_', '').replace('.', '').isalnum():
            raise serializers.ValidationError('Username may only contain letters, digits, "." and "_"')
        return v

    def validate_fullName(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate_phone(self, v):
        return bleach.clean((v or '').strip(), strip=True)


class ProfileUpdateSerializer(serializers.Serializer):
    fullName = serializers.CharField(max_length=150, required=False)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    gender = serializers.CharField(max_length=10, required=False, allow_blank=True)
    dateOfBirth = serializers.DateField(required=False, allow_null=True)
    citizenId = serializers.CharField(max_length=20, required=False, allow_blank=True)

    def validate_fullName(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v
